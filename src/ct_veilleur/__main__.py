"""Tail Google's CT logs and print every new certificate to stdout."""

import asyncio
import logging
import signal
import sys

from . import CertificateRecord, CTVeilleurError, MonitorSupervisor
from .log_list import fetch_log_list, parse_log_list, select_logs

logger = logging.getLogger("ct_veilleur")


def print_record(record: CertificateRecord) -> None:
    print(record.to_line(), flush=True)


async def _run() -> int:
    try:
        log_list = parse_log_list(await fetch_log_list())
        sources = select_logs(log_list, operator="Google")
    except CTVeilleurError as e:
        logger.error(str(e))
        return 1

    supervisor = MonitorSupervisor(sources, print_record)

    def _on_signal(signum: int) -> None:
        logger.debug(f"Received signal {signum}")
        logger.info("Shutting down...")
        supervisor.shutdown()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, _on_signal, signum)

    monitors = await supervisor.run()
    if all(monitor.error is not None for monitor in monitors):
        return 1
    return 0


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    sys.exit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
