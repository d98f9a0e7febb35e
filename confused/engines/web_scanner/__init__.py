"""Web scanner engine — discover manifests exposed by web servers."""

from confused.engines.web_scanner.scanner import COMMON_DIRS, WebScanner

__all__ = ["COMMON_DIRS", "WebScanner"]
