"""Unit tests for authenticator codes."""

from src.auth_starter.core.identity import totp

# RFC 6238 appendix B secret ("12345678901234567890") in base32
RFC_KEY = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


def test_rfc_6238_vector():
    # T = 59s -> timestep 1 -> 94287082, truncated to six digits
    assert totp.compute_code(RFC_KEY, 1) == "287082"


def test_verify_allows_one_step_of_drift():
    now = 1_000_000.0
    step = int(now // totp.TIME_STEP_SECONDS)

    assert totp.verify_code(RFC_KEY, totp.compute_code(RFC_KEY, step), now)
    assert totp.verify_code(RFC_KEY, totp.compute_code(RFC_KEY, step - 1), now)
    assert not totp.verify_code(RFC_KEY, totp.compute_code(RFC_KEY, step - 3), now)


def test_verify_ignores_spaces_and_dashes():
    now = 1_000_000.0
    code = totp.compute_code(RFC_KEY, int(now // 30))
    assert totp.verify_code(RFC_KEY, f"{code[:3]} {code[3:]}", now)


def test_verify_rejects_malformed_codes():
    assert not totp.verify_code(RFC_KEY, "12345")
    assert not totp.verify_code(RFC_KEY, "abcdef")


def test_generated_key_is_base32():
    key = totp.generate_key()
    assert len(key) == 32
    assert totp.compute_code(key, 0).isdigit()


def test_format_key_and_uri():
    assert totp.format_key("ABCDEFGH") == "abcd efgh"
    uri = totp.authenticator_uri("auth-starter", "alice@example.com", "ABCD")
    assert uri == (
        "otpauth://totp/auth-starter%3Aalice%40example.com"
        "?secret=ABCD&issuer=auth-starter&digits=6"
    )
