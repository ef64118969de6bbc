"""
eventmerge demo: merge the sample sources by arrival time.

Logs each merged event and writes the result as JSON to stdout.
Tunables come from the environment (TIME_SCALE, EMITTER_BACKEND, MERGE_TIMEOUT, LOG_JSON).
"""
import asyncio
import sys
from .codec import dump_events
from .config import get_settings
from .logging import setup_logging, get_logger
from .samples import int_source, text_source
from .services.driver import run_merge


def main() -> int:
    settings = get_settings()
    setup_logging(json_output=settings.LOG_JSON, service_name="eventmerge", level=settings.LOG_LEVEL)
    logger = get_logger()

    result = asyncio.run(run_merge(int_source(), text_source(), names=["ints", "texts"]))
    for position, event in enumerate(result):
        logger.info(
            "merge.result",
            position=position,
            source=event.source,
            id=event.id,
            time=event.time,
            value=event.value.value,
        )

    print(dump_events(result).decode())
    return 0


if __name__ == "__main__":
    sys.exit(main())
