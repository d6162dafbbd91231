import asyncio
import logging
import signal

from dotenv import load_dotenv

from core.settings import load_settings
from transports.discord_bot import DiscordTransport, run_discord_bot


async def main():
    load_dotenv()
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s :: %(message)s",
    )

    bot = DiscordTransport(settings)

    stop_event = asyncio.Event()

    def _signal_handler(*_):
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            signal.signal(sig, lambda *_: stop_event.set())

    discord_task = asyncio.create_task(run_discord_bot(settings, bot))
    stop_task = asyncio.create_task(stop_event.wait())

    await asyncio.wait({discord_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

    stop_task.cancel()
    discord_task.cancel()
    try:
        await discord_task
    except asyncio.CancelledError:
        pass


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
