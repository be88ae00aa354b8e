import pytest

from services.error_sanitizer import sanitize_public_error_message


@pytest.mark.parametrize("message", [None, "", "   \n\t "])
def test_empty_messages_return_none(message):
    assert sanitize_public_error_message(message) is None


def test_plain_message_is_normalized():
    assert sanitize_public_error_message("Image  provider\nreturned 500") == (
        "Image provider returned 500"
    )


@pytest.mark.parametrize(
    "message",
    [
        'Traceback (most recent call last): File "/app/services/storage.py", line 3',
        "https://bucket.s3.amazonaws.com/k?X-Amz-Signature=deadbeef",
        "Authorization: Bearer r8_secret_token",
        "invalid api_key supplied",
        "sqlalchemy.exc.OperationalError: database is locked",
        "could not open /home/app/storage/photo.png",
    ],
)
def test_suspicious_messages_use_fallback(message):
    assert sanitize_public_error_message(message, fallback="Physique analysis failed") == (
        "Physique analysis failed"
    )


def test_long_messages_are_truncated():
    result = sanitize_public_error_message("x" * 500, max_chars=10)
    assert result == "xxxxxxxxxx…"
