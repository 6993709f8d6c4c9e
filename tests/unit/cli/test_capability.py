"""Unit tests for the client-side note key and link handling."""

from datetime import datetime, timedelta

import pytest

from modules.cli.capability import (
    KEY_BYTES,
    NONCE_BYTES,
    DecryptionError,
    InvalidLinkError,
    compose_link,
    decrypt,
    encrypt,
    export_key,
    format_remaining,
    generate_key,
    import_key,
    parse_link,
    remaining,
)


class TestEncryption:
    """Tests for AES-GCM note encryption."""

    def test_round_trip(self) -> None:
        key = generate_key()
        ciphertext, iv = encrypt("ABCD", key)

        assert decrypt(ciphertext, iv, key) == "ABCD"

    def test_unicode_text(self) -> None:
        key = generate_key()
        ciphertext, iv = encrypt("pässwörd ✓", key)

        assert decrypt(ciphertext, iv, key) == "pässwörd ✓"

    def test_ciphertext_does_not_contain_plaintext(self) -> None:
        key = generate_key()
        ciphertext, _ = encrypt("ABCDABCDABCD", key)

        assert b"ABCD" not in ciphertext

    def test_fresh_nonce_per_note(self) -> None:
        key = generate_key()
        first = encrypt("same", key)
        second = encrypt("same", key)

        assert len(first[1]) == NONCE_BYTES
        assert first[1] != second[1]
        assert first[0] != second[0]

    def test_wrong_key_fails(self) -> None:
        ciphertext, iv = encrypt("ABCD", generate_key())

        with pytest.raises(DecryptionError):
            decrypt(ciphertext, iv, generate_key())

    def test_tampered_ciphertext_fails(self) -> None:
        key = generate_key()
        ciphertext, iv = encrypt("ABCD", key)
        tampered = bytes([ciphertext[0] ^ 0x01]) + ciphertext[1:]

        with pytest.raises(DecryptionError):
            decrypt(tampered, iv, key)

    def test_wrong_iv_fails(self) -> None:
        key = generate_key()
        ciphertext, _ = encrypt("ABCD", key)

        with pytest.raises(DecryptionError):
            decrypt(ciphertext, b"\x00" * NONCE_BYTES, key)

    def test_empty_iv_fails(self) -> None:
        key = generate_key()
        ciphertext, _ = encrypt("ABCD", key)

        with pytest.raises(DecryptionError):
            decrypt(ciphertext, b"", key)


class TestKeyEncoding:
    """Tests for exporting and importing keys in link fragments."""

    def test_generated_key_length(self) -> None:
        assert len(generate_key()) == KEY_BYTES

    def test_export_is_url_safe_without_padding(self) -> None:
        exported = export_key(b"\xff" * KEY_BYTES)

        assert "=" not in exported
        assert "+" not in exported
        assert "/" not in exported

    def test_import_restores_key(self) -> None:
        key = generate_key()

        assert import_key(export_key(key)) == key

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "not base64!",
            export_key(b"\x01" * 16),
            export_key(b"\x01" * KEY_BYTES) + "A",
        ],
    )
    def test_import_rejects_malformed(self, text: str) -> None:
        with pytest.raises(InvalidLinkError):
            import_key(text)


class TestLinks:
    """Tests for composing and parsing share links."""

    def test_key_only_in_fragment(self) -> None:
        key = generate_key()
        link = compose_link("https://notes.example/", "abc123", key)

        base, fragment = link.split("#", 1)
        assert base == "https://notes.example/view?id=abc123"
        assert fragment == f"key={export_key(key)}"
        assert export_key(key) not in base

    def test_parse_returns_id_and_key(self) -> None:
        key = generate_key()
        link = compose_link("https://notes.example", "abc123", key)

        assert parse_link(link) == ("abc123", key)

    def test_parse_ignores_surrounding_whitespace(self) -> None:
        key = generate_key()
        link = compose_link("https://notes.example", "abc123", key)

        assert parse_link(f"  {link}\n") == ("abc123", key)

    def test_missing_id(self) -> None:
        with pytest.raises(InvalidLinkError, match="no note id"):
            parse_link(f"https://notes.example/view#key={export_key(generate_key())}")

    def test_missing_key(self) -> None:
        with pytest.raises(InvalidLinkError, match="no key"):
            parse_link("https://notes.example/view?id=abc123")

    def test_key_in_query_is_not_accepted(self) -> None:
        key = export_key(generate_key())

        with pytest.raises(InvalidLinkError):
            parse_link(f"https://notes.example/view?id=abc123&key={key}")


class TestCountdown:
    """Tests for time-left helpers."""

    def test_remaining_before_expiry(self) -> None:
        now = datetime(2026, 1, 1, 12, 0, 0)

        assert remaining(now, now + timedelta(minutes=5)) == timedelta(minutes=5)

    def test_remaining_never_negative(self) -> None:
        now = datetime(2026, 1, 1, 12, 0, 0)

        assert remaining(now, now - timedelta(minutes=5)) == timedelta(0)

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(0), "00:00:00"),
            (timedelta(minutes=4, seconds=59), "00:04:59"),
            (timedelta(hours=23, minutes=59, seconds=59), "23:59:59"),
            (timedelta(days=1, hours=2, minutes=3, seconds=4), "1d 02:03:04"),
            (timedelta(seconds=59, microseconds=900000), "00:00:59"),
        ],
    )
    def test_format_remaining(self, delta: timedelta, expected: str) -> None:
        assert format_remaining(delta) == expected
