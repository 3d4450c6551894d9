"""
Protocol check variants.

Importing this package registers every built-in variant under its
check-type string:
- ssh: password login and command execution
- vnc: RFB password handshake
- tcp: plain TCP connect
- http: HTTP request with status and optional content match
"""

from .base import CHECK_TYPES, Check, create_check, register_check
from .results import CheckResult
from .ssh_check import SSHCheck
from .vnc_check import VNCCheck
from .tcp_check import TCPCheck
from .http_check import HTTPCheck

__all__ = [
    'CHECK_TYPES',
    'Check',
    'CheckResult',
    'create_check',
    'register_check',
    'SSHCheck',
    'VNCCheck',
    'TCPCheck',
    'HTTPCheck',
]
