"""Tests for certificate identifier derivation."""

from certchain.identifiers import derive_certificate_id


def test_identifier_is_deterministic():
    first = derive_certificate_id("John Doe", "Programming Contest 2024", "2024-06-01", "0xabc", 1)
    second = derive_certificate_id("John Doe", "Programming Contest 2024", "2024-06-01", "0xabc", 1)

    assert first == second


def test_identifier_is_fixed_width_hex():
    identifier = derive_certificate_id("John Doe", "Hackathon 2024", "2024-06-01", "0xabc", 1)

    assert identifier.startswith("0x")
    assert len(identifier) == 66
    int(identifier[2:], 16)


def test_nonce_separates_identical_content():
    first = derive_certificate_id("John Doe", "Hackathon 2024", "2024-06-01", "0xabc", 1)
    second = derive_certificate_id("John Doe", "Hackathon 2024", "2024-06-01", "0xabc", 2)

    assert first != second


def test_every_field_contributes():
    base = ("John Doe", "Hackathon 2024", "2024-06-01", "0xabc", 1)
    variants = [
        ("Jane Doe", "Hackathon 2024", "2024-06-01", "0xabc", 1),
        ("John Doe", "AI Competition", "2024-06-01", "0xabc", 1),
        ("John Doe", "Hackathon 2024", "2024-06-02", "0xabc", 1),
        ("John Doe", "Hackathon 2024", "2024-06-01", "0xdef", 1),
    ]

    identifiers = {derive_certificate_id(*fields) for fields in [base, *variants]}

    assert len(identifiers) == 5


def test_field_boundaries_do_not_collide():
    first = derive_certificate_id("John|Doe", "Event", "2024-06-01", "0xabc", 1)
    second = derive_certificate_id("John", "Doe|Event", "2024-06-01", "0xabc", 1)

    assert first != second
