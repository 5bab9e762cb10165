"""The stock set of checks, wired with the runtime config."""

from typing import List, Optional

from wsscanner.checkers.auth_bypass import AuthBypassCheck
from wsscanner.checkers.base import BaseChecker
from wsscanner.checkers.bola import BOLACheck
from wsscanner.checkers.cmdi import CommandInjectionCheck
from wsscanner.checkers.cswsh_handshake import CSWSHHandshakeCheck
from wsscanner.checkers.cswsh_origin import CSWSHOriginCheck
from wsscanner.checkers.encryption import EncryptionCheck
from wsscanner.checkers.idor_pattern import IDORPatternCheck
from wsscanner.checkers.ldapi import LDAPInjectionCheck
from wsscanner.checkers.nosqli import NoSQLInjectionCheck
from wsscanner.checkers.sqli import SQLInjectionCheck
from wsscanner.checkers.ssti import TemplateInjectionCheck
from wsscanner.checkers.token_in_url import TokenInURLCheck
from wsscanner.checkers.verbose_error import VerboseErrorCheck
from wsscanner.checkers.xpathi import XPathInjectionCheck
from wsscanner.checkers.xss import XSSInjectionCheck
from wsscanner.core.config import ScannerConfig


def build_default_checks(config: Optional[ScannerConfig] = None, logger=None) -> List[BaseChecker]:
    """Passive checks first, then active ones, in a stable order."""
    config = config or ScannerConfig()
    active = dict(timeout_ms=config.response_timeout_ms,
                  delay_ms=config.probe_delay_ms,
                  max_display_length=config.max_display_length,
                  logger=logger)
    timing = dict(time_based_timeout_ms=config.time_based_timeout_ms,
                  timing_threshold_ms=config.timing_threshold_ms)

    checks: List[BaseChecker] = [
        CSWSHOriginCheck(logger=logger),
        EncryptionCheck(logger=logger),
        TokenInURLCheck(logger=logger),
        IDORPatternCheck(logger=logger),
        VerboseErrorCheck(logger=logger),
        CSWSHHandshakeCheck(proxy=config.proxy, **active),
        SQLInjectionCheck(**timing, **active),
        NoSQLInjectionCheck(**active),
        CommandInjectionCheck(**timing, **active),
        XSSInjectionCheck(**active),
        LDAPInjectionCheck(**active),
        XPathInjectionCheck(**active),
        TemplateInjectionCheck(**active),
        BOLACheck(**active),
        AuthBypassCheck(**active),
    ]
    for chk in checks:
        chk.max_display_length = config.max_display_length
    return checks
