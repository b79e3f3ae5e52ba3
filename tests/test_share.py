from proposal.share import build_share_url, encode_uri_component

MESSAGE = "I just said YES 💍💖 Happy Valentine's!"
ENCODED = "I%20just%20said%20YES%20%F0%9F%92%8D%F0%9F%92%96%20Happy%20Valentine's!"


def test_encode_matches_uri_component_rules():
    assert encode_uri_component(MESSAGE) == ENCODED
    assert encode_uri_component("a&b=c/d") == "a%26b%3Dc%2Fd"


def test_share_url_with_contact():
    assert build_share_url("15551234567", MESSAGE) == f"https://wa.me/15551234567?text={ENCODED}"


def test_share_url_without_contact_uses_generic_target():
    assert build_share_url("", MESSAGE) == f"https://wa.me/?text={ENCODED}"
    assert build_share_url(None, MESSAGE) == f"https://wa.me/?text={ENCODED}"
