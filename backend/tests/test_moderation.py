from datetime import date

import pytest

from services.moderation import (
    MAX_FILE_SIZE_BYTES,
    check_image_content,
    validate_content_type,
    validate_file_size,
    verify_age,
)

TODAY = date(2026, 6, 15)


class TestVerifyAge:
    def test_over_18(self):
        assert verify_age(date(2001, 6, 15), today=TODAY) == (True, 25)

    def test_under_18(self):
        assert verify_age(date(2010, 1, 1), today=TODAY) == (False, 16)

    def test_exactly_18_on_birthday(self):
        assert verify_age(date(2008, 6, 15), today=TODAY) == (True, 18)

    def test_day_before_18th_birthday(self):
        assert verify_age(date(2008, 6, 16), today=TODAY) == (False, 17)

    def test_later_month_not_yet_passed(self):
        assert verify_age(date(2000, 12, 1), today=TODAY) == (True, 25)


class TestValidateContentType:
    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/webp"])
    def test_accepts_supported(self, content_type):
        assert validate_content_type(content_type)

    @pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", ""])
    def test_rejects_others(self, content_type):
        assert not validate_content_type(content_type)


class TestValidateFileSize:
    def test_under_limit(self):
        assert validate_file_size(5 * 1024 * 1024)

    def test_exactly_limit(self):
        assert validate_file_size(MAX_FILE_SIZE_BYTES)

    def test_over_limit(self):
        assert not validate_file_size(11 * 1024 * 1024)


@pytest.mark.asyncio
async def test_check_image_content_placeholder_approves():
    result = await check_image_content("u/physique_input/k")

    assert result.approved is True
    assert result.reasons == []
    assert result.confidence == 0.5
