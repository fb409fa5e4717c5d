"""Errors raised while checking, decoding, or scanning a price list.

Every error is fatal to the current upload only: the caller shows the message
and keeps whatever price list it already had.
"""

from __future__ import annotations


class PriceListError(ValueError):
    """Base class for all price-list failures.

    Attributes:
        code: Stable machine-readable identifier (e.g. ``"no_valid_items"``).
        message: User-facing message.
    """

    code = "price_list_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidFileTypeError(PriceListError):
    code = "invalid_file_type"

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"엑셀(.xlsx/.xls) 파일만 업로드 가능합니다: {filename}")


class FileTooLargeError(PriceListError):
    code = "file_too_large"

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        limit_mb = limit // (1024 * 1024)
        super().__init__(f"파일 용량이 큽니다 ({size} bytes). {limit_mb}MB 이하로 줄여주세요.")


class EmptyWorkbookError(PriceListError):
    code = "empty_workbook"

    def __init__(self) -> None:
        super().__init__("시트를 찾을 수 없습니다.")


class SheetTooLargeError(PriceListError):
    code = "sheet_too_large"

    def __init__(self, sheet: str, row_count: int) -> None:
        self.sheet = sheet
        self.row_count = row_count
        super().__init__(f"시트가 너무 큽니다 ({row_count}행). 파일을 정리해 주세요.")


class NoValidItemsError(PriceListError):
    code = "no_valid_items"

    def __init__(self) -> None:
        super().__init__(
            "유효한 품목을 찾지 못했습니다. 시트명(1~4), B/C/D 열 구조를 확인하세요."
        )


class DecodeFailureError(PriceListError):
    code = "decode_failure"

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"엑셀을 불러오는 중 오류가 발생했습니다: {filename}")
