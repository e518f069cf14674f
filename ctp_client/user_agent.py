from __future__ import annotations
import platform
from typing import Any, Optional

import requests


def build_user_agent(library_name: str, library_version: str,
                     contact_url: Optional[str] = None, contact_email: Optional[str] = None) -> str:
    ua = (f"{library_name}/{library_version} "
          f"Python/{platform.python_version()} ({platform.system()}; {platform.machine()}) "
          f"requests/{requests.__version__}")
    contacts = [f"+{c}" for c in (contact_url, contact_email) if c]
    if contacts:
        ua += f" ({'; '.join(contacts)})"
    return ua


class IdentityStage:
    """Stamps every request with the client identification header."""

    def __init__(self, library_name: str, library_version: str,
                 contact_url: Optional[str] = None, contact_email: Optional[str] = None):
        self.user_agent = build_user_agent(library_name, library_version, contact_url, contact_email)

    def apply(self, descriptor: Any) -> Any:
        return descriptor.with_headers({'User-Agent': self.user_agent})
