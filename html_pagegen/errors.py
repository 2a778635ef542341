"""Error definitions and diagnostics for html_pagegen.

This module defines the exception types raised while producing a page,
each with a stable code, and the formatter that turns any failure into
the diagnostic recorded on the build and the error page published in
place of the page.
"""

from __future__ import annotations

import html
import io
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.traceback import Traceback

# Error code constants
CONFIGURATION_ERROR = "configuration_error"
SUB_BUILD_ERROR = "sub_build_failed"
TEMPLATE_CONTRACT_ERROR = "template_contract"
TEMPLATE_EXECUTION_ERROR = "template_execution_failed"
RESOURCE_ERROR = "resource_error"

ERROR_PAGE_TITLE = "Html Page Plugin:"
TRACEBACK_WIDTH = 100


class HtmlPageError(Exception):
    """Base error for page generation."""

    def __init__(self, message: str, code: str = "html_page_error") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(HtmlPageError):
    """Raised when plugin options are invalid (e.g. unknown sort mode)."""

    def __init__(self, message: str, code: str = CONFIGURATION_ERROR) -> None:
        super().__init__(message, code)


class SubBuildError(HtmlPageError):
    """Raised when the template child build fails or yields no result."""

    def __init__(self, message: str, code: str = SUB_BUILD_ERROR) -> None:
        super().__init__(message, code)


class TemplateContractError(HtmlPageError):
    """Raised when a template yields neither markup nor a template function."""

    def __init__(
        self,
        message: str,
        template: str | None = None,
        code: str = TEMPLATE_CONTRACT_ERROR,
    ) -> None:
        super().__init__(message, code)
        self.template = template


class TemplateExecutionError(HtmlPageError):
    """Raised when a template function raises while rendering."""

    def __init__(self, message: str, code: str = TEMPLATE_EXECUTION_ERROR) -> None:
        super().__init__(message, code)


class ResourceError(HtmlPageError):
    """Raised when a file referenced by the options cannot be loaded."""

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        code: str = RESOURCE_ERROR,
    ) -> None:
        super().__init__(message, code)
        self.path = path


@dataclass
class ErrorReport:
    """Formatted view of a failure.

    Attributes:
        error: The original failure (exception or message).
        context: Build context directory, shortened to '.' in output.
    """

    error: BaseException | str
    context: str | None = None

    def to_string(self) -> str:
        """Render the failure as plain text, with a traceback when available."""
        err = self.error
        if isinstance(err, BaseException) and err.__traceback__ is not None:
            console = Console(
                file=io.StringIO(),
                record=True,
                width=TRACEBACK_WIDTH,
                color_system=None,
                force_terminal=False,
            )
            console.print(
                Traceback.from_exception(
                    type(err), err, err.__traceback__, width=TRACEBACK_WIDTH
                )
            )
            text = console.export_text()
        elif isinstance(err, BaseException):
            text = f"{type(err).__name__}: {err}"
        else:
            text = str(err)
        if self.context:
            text = text.replace(self.context, ".")
        return text.rstrip("\n")

    def to_html(self) -> str:
        """Render the failure as the body of an error page."""
        return f"{ERROR_PAGE_TITLE}\n<pre>\n{html.escape(self.to_string())}</pre>"

    def to_expression_html(self) -> str:
        """Render the error page as a Python string literal expression."""
        return repr(self.to_html())

    def __str__(self) -> str:
        return self.to_string()


def format_error(
    error: BaseException | str, context: Path | str | None = None
) -> ErrorReport:
    """Create an ErrorReport for a failure.

    Args:
        error: Exception or message.
        context: Build context directory.

    Returns:
        ErrorReport instance.
    """
    return ErrorReport(error=error, context=str(context) if context else None)


__all__ = [
    "CONFIGURATION_ERROR",
    "RESOURCE_ERROR",
    "SUB_BUILD_ERROR",
    "TEMPLATE_CONTRACT_ERROR",
    "TEMPLATE_EXECUTION_ERROR",
    "ConfigurationError",
    "ErrorReport",
    "HtmlPageError",
    "ResourceError",
    "SubBuildError",
    "TemplateContractError",
    "TemplateExecutionError",
    "format_error",
]
