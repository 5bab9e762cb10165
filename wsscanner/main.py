import argparse
import sys
import time

from wsscanner.checkers.registry import build_default_checks
from wsscanner.core.config import ScannerConfig
from wsscanner.core.context import ScanContext
from wsscanner.core.engine import AttackExecutor
from wsscanner.core.errors import TransportError
from wsscanner.core.models import Category, ScanMode
from wsscanner.core.orchestrator import ScanOrchestrator
from wsscanner.parsers.handshake import HandshakeRequest
from wsscanner.payloads.models import NumericPayloadModel, StringPayloadModel
from wsscanner.reporters.collector import FindingCollector
from wsscanner.reporters.console import ConsoleReporter, Log
from wsscanner.transport.client import WebSocketConnection
from wsscanner.transport.history import load_history

_CATEGORIES = {c.name.lower(): c for c in Category}
_MODES = {m.value: m for m in ScanMode}


def _headers(values):
    headers = {}
    for h in values or []:
        if ":" not in h:
            raise SystemExit(f"Invalid header {h!r}, expected 'Name: value'")
        k, v = h.split(":", 1)
        headers[k.strip()] = v.strip()
    return headers


class _Fanout:
    """Feeds one finding stream to several sinks."""

    def __init__(self, *sinks, logger=None):
        self.sinks = sinks
        self.logger = logger

    def report(self, finding):
        for s in self.sinks:
            try:
                s.report(finding)
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"{type(s).__name__} could not record finding: {e}")


def run_scan(orchestrator: ScanOrchestrator, ctx: ScanContext, args, log: Log) -> FindingCollector:
    collector = FindingCollector(logger=log)
    orchestrator.set_reporter(_Fanout(collector, ConsoleReporter(log), logger=log))
    orchestrator.set_status_callback(lambda s: log.debug(s) if log.verbose >= 2 else None)
    categories = [_CATEGORIES[c] for c in (args.category or [])]

    if not orchestrator.start(ctx, categories, _MODES[args.mode]):
        raise SystemExit(1)
    try:
        while not orchestrator.wait(0.5):
            pass
    except KeyboardInterrupt:
        orchestrator.cancel()
        orchestrator.wait()

    counts = ", ".join(f"{k}: {v}" for k, v in collector.severity_counts().items() if v)
    log.ok(f"{len(collector.findings)} findings ({counts or 'none'})")
    if args.output:
        collector.export_json(args.output)
    return collector


def cmd_scan(args, config: ScannerConfig, log: Log):
    orchestrator = ScanOrchestrator(logger=log)
    orchestrator.register_checks(build_default_checks(config))

    conn = WebSocketConnection(args.url, headers=_headers(args.header), origin=args.origin,
                               timeout=config.connect_timeout, proxy=config.proxy, logger=log)
    try:
        conn.connect()
    except TransportError as e:
        log.fail(str(e))
        raise SystemExit(1)
    try:
        # prime the history with the caller's sample traffic
        for msg in args.send or []:
            try:
                conn.send_text(msg)
            except TransportError as e:
                log.fail(str(e))
                raise SystemExit(1)
        if args.listen > 0:
            log.info(f"Listening {args.listen}s for traffic")
            time.sleep(args.listen)
        ctx = conn.scan_context(active_mode=_MODES[args.mode] != ScanMode.PASSIVE_ONLY,
                                templates=args.template or ())
        run_scan(orchestrator, ctx, args, log)
    finally:
        conn.close()


def cmd_passive(args, config: ScannerConfig, log: Log):
    orchestrator = ScanOrchestrator(logger=log)
    orchestrator.register_checks(c for c in build_default_checks(config) if c.is_passive())
    handshake = HandshakeRequest.from_file(args.handshake) if args.handshake else None
    ctx = ScanContext(connection_id=args.connection_id, url=args.url, handshake=handshake,
                      history=load_history(args.history, logger=log))
    args.mode = ScanMode.PASSIVE_ONLY.value
    run_scan(orchestrator, ctx, args, log)


def cmd_fuzz(args, config: ScannerConfig, log: Log):
    if args.numeric:
        model = NumericPayloadModel.parse(args.numeric)
    else:
        model = StringPayloadModel.from_file(args.payloads)
        if args.dedupe:
            model.remove_duplicates()

    executor = AttackExecutor(min_delay_ms=config.fuzz_min_delay_ms,
                              max_delay_ms=config.fuzz_max_delay_ms,
                              grace_seconds=config.fuzz_grace_seconds, logger=log)

    def show(result):
        arrow = "→" if result.sent else "←"
        log.info(f"{arrow} [{result.payload}] {result.content[:200]}")

    executor.set_result_callback(show)
    executor.set_progress_callback(lambda p: log.debug(f"Progress {p}%"))

    conn = WebSocketConnection(args.url, headers=_headers(args.header), origin=args.origin,
                               timeout=config.connect_timeout, proxy=config.proxy, logger=log)
    try:
        conn.connect()
    except TransportError as e:
        log.fail(str(e))
        raise SystemExit(1)
    try:
        if not executor.start(conn, model, args.template):
            raise SystemExit(1)
        try:
            while not executor.wait(0.5):
                pass
        except KeyboardInterrupt:
            executor.cancel()
            executor.wait()
    finally:
        conn.close()


def main(argv=None):
    p = argparse.ArgumentParser(description="WebSocket Vulnerability Scanner")
    p.add_argument("--proxy", help="HTTP proxy (e.g. http://127.0.0.1:8080)")
    p.add_argument("-v", "--verbose", action="count", default=1, help="-v, -vv")
    sub = p.add_subparsers(dest="command", required=True)

    def connection_args(sp):
        sp.add_argument("url", help="ws:// or wss:// endpoint")
        sp.add_argument("-H", "--header", action="append", help="Extra handshake header 'Name: value'")
        sp.add_argument("--origin", help="Origin header for the handshake")
        sp.add_argument("--connect-timeout", dest="connect_timeout", type=float)

    def report_args(sp):
        sp.add_argument("-c", "--category", action="append", choices=sorted(_CATEGORIES),
                        help="Limit to a category (repeatable)")
        sp.add_argument("-o", "--output", help="Write findings as JSON")
        sp.add_argument("--timeout", dest="response_timeout_ms", type=int,
                        help="Reply timeout per probe in ms")
        sp.add_argument("--delay", dest="probe_delay_ms", type=int, help="Delay between probes in ms")

    s = sub.add_parser("scan", help="Scan a live endpoint")
    connection_args(s)
    report_args(s)
    s.add_argument("--mode", default=ScanMode.FULL_SCAN.value, choices=sorted(_MODES))
    s.add_argument("-t", "--template", action="append", help="Message used as attack template")
    s.add_argument("--send", action="append", help="Message to send before scanning")
    s.add_argument("--listen", type=float, default=2.0, help="Seconds to record traffic first")

    ps = sub.add_parser("passive", help="Passive checks over recorded traffic")
    ps.add_argument("--history", required=True, help="JSON-lines message history")
    ps.add_argument("--url", required=True, help="URL the history was recorded from")
    ps.add_argument("--handshake", help="Raw upgrade request file")
    ps.add_argument("--connection-id", dest="connection_id", default="offline")
    report_args(ps)

    f = sub.add_parser("fuzz", help="Send a marked template once per payload")
    connection_args(f)
    f.add_argument("-t", "--template", required=True, help="Message with §marked§ positions")
    src = f.add_mutually_exclusive_group(required=True)
    src.add_argument("--payloads", help="Payload list file, one per line")
    src.add_argument("--numeric", help="Numeric range FROM:TO[:STEP[:DIGITS]]")
    f.add_argument("--dedupe", action="store_true", help="Drop duplicate payloads")
    f.add_argument("--min-delay", dest="fuzz_min_delay_ms", type=int)
    f.add_argument("--max-delay", dest="fuzz_max_delay_ms", type=int)
    f.add_argument("--grace", dest="fuzz_grace_seconds", type=float,
                   help="Seconds to keep listening after the last payload")

    args = p.parse_args(argv)
    log = Log(verbose=args.verbose)
    try:
        config = ScannerConfig.from_args(args)
    except ValueError as e:
        log.fail(str(e))
        return 2

    {"scan": cmd_scan, "passive": cmd_passive, "fuzz": cmd_fuzz}[args.command](args, config, log)
    return 0


if __name__ == "__main__":
    sys.exit(main())
