from __future__ import annotations

from typing import Protocol

from subscription_api.exceptions import AppError


class ErrorTranslator(Protocol):
    def translate(self, cause: BaseException) -> AppError:
        pass
