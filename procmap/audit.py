"""
procmap/audit.py
----------------
Acting identity and network origin sent with every write.
The engine never looks these up itself; the surrounding framework builds an
AuditContext per request (or once per process) and passes it in.
"""

import getpass
from dataclasses import dataclass
from typing import Optional


def resolve_ip(forwarded_for: Optional[str] = None, remote_addr: Optional[str] = None) -> str:
    """
    Pick the caller's address.

    The forwarded-for header wins when present. When it lists several hops,
    the first (client) address is used.
    """
    ip = forwarded_for if forwarded_for else (remote_addr or "")
    if "," in ip:
        return ip.split(",")[0].strip()
    return ip.strip()


@dataclass(frozen=True)
class AuditContext:
    """
    Attributes:
        user_name: Who is making the change (empty if unknown).
        ip: Where the change came from (empty outside a request).
    """

    user_name: str = ""
    ip: str = ""

    @classmethod
    def from_request(
        cls,
        user_name: Optional[str] = None,
        forwarded_for: Optional[str] = None,
        remote_addr: Optional[str] = None,
    ) -> "AuditContext":
        """Build a context from web request data."""
        return cls(user_name=user_name or "", ip=resolve_ip(forwarded_for, remote_addr))

    @classmethod
    def for_process(cls) -> "AuditContext":
        """Build a context from the identity the process runs under."""
        try:
            user_name = getpass.getuser()
        except (KeyError, OSError):
            user_name = ""
        return cls(user_name=user_name)

    def as_parameters(self) -> dict[str, str]:
        return {"UserName": self.user_name, "IP": self.ip}
