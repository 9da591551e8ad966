from risklens.services.red_flag_detector import RED_FLAG_PATTERNS, detect_red_flags


def test_two_flags_in_declared_order_regardless_of_text_order():
    text = (
        "This lease includes automatic renewal each year. "
        "Tenant accepts unlimited liability for damages."
    )
    assert detect_red_flags(text) == [
        "Unlimited liability clause detected",
        "Automatic renewal clause found",
    ]


def test_repetition_does_not_duplicate_flags():
    text = "unlimited liability. Unlimited Liability. UNLIMITED LIABILITY. automatic renewal, automatic renewal."
    assert detect_red_flags(text) == [
        "Unlimited liability clause detected",
        "Automatic renewal clause found",
    ]


def test_automatically_renews_wording_is_flagged():
    assert detect_red_flags("This contract automatically renews annually.") == [
        "Automatic renewal clause found"
    ]


def test_assignment_without_consent_within_sentence_only():
    assert "Assignment without consent clause found" in detect_red_flags(
        "Assignment of this Agreement without prior written consent is permitted."
    )
    assert "Assignment without consent clause found" not in detect_red_flags(
        "Assignment is allowed. Work proceeds without delay. Consent is implied."
    )


def test_all_patterns_can_fire():
    text = (
        "unlimited liability; personal guarantee; automatic renewal; non-compete; "
        "sole discretion; without cause; liquidated damages; "
        "assignment without consent; exclusive; penalty"
    )
    assert detect_red_flags(text) == [flag for _, flag in RED_FLAG_PATTERNS]


def test_clean_text_has_no_flags():
    assert detect_red_flags("Payment is due within 30 days.") == []
