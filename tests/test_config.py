from pathlib import Path

from proposal.config import ProposalPolicy, format_display_name, load_policy, parse_query


def test_parse_query_capitalizes_first_letter_only():
    config = parse_query("?name=alice")
    assert config.display_name == "Alice"

    config = parse_query({"name": "my love"})
    assert config.display_name == "My love"


def test_parse_query_defaults():
    config = parse_query("")

    assert config.display_name == "My Love"
    assert config.contact == ""
    assert config.reset is False


def test_empty_name_falls_back_to_default():
    assert format_display_name("") == "My Love"
    assert format_display_name(None, default="Bae") == "Bae"


def test_reset_only_for_literal_true():
    assert parse_query("reset=true").reset is True
    assert parse_query("reset=1").reset is False
    assert parse_query("reset=TRUE").reset is False


def test_parse_query_reads_contact():
    assert parse_query("whatsapp=15551234567").contact == "15551234567"


def test_load_policy_missing_file_uses_defaults(tmp_path: Path):
    policy = load_policy(tmp_path / "nao_existe.yaml")

    assert policy == ProposalPolicy()
    assert policy.message_count == 6
    assert policy.no_messages[-1] == "Last chance 😭"


def test_load_policy_reads_yaml(tmp_path: Path):
    path = tmp_path / "policy.yaml"
    path.write_text(
        "proposal:\n  final_yes_scale: 20\n  no_messages: ['NO', 'Sure?', 'Last']\n  confetti:\n    duration_ms: 500\n",
        encoding="utf-8",
    )
    policy = load_policy(path)

    assert policy.final_yes_scale == 20
    assert policy.message_count == 3
    assert policy.confetti.duration_ms == 500
    assert policy.confetti.interval_ms == 30


def test_load_policy_invalid_falls_back(tmp_path: Path):
    path = tmp_path / "policy.yaml"
    path.write_text("proposal:\n  no_messages: ['only one']\n", encoding="utf-8")

    assert load_policy(path) == ProposalPolicy()


def test_bundled_policy_matches_defaults():
    assert load_policy() == ProposalPolicy()
