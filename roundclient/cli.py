"""Command-line watcher for live rounds."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Callable

from roundclient.core.config import load_settings
from roundclient.core.credentials import StaticCredentialProvider
from roundclient.errors import ChannelError
from roundclient.rounds.dispatcher import RoundEventKind
from roundclient.rounds.models import GameCategory
from roundclient.rounds.models import Round
from roundclient.rounds.models import TimerTick
from roundclient.rounds.projection import format_countdown
from roundclient.session import TradingSession


def render_round(round_: Round) -> str:
    """One-line summary of a projected round."""
    line = (
        f"[{round_.game_category.value}] round #{round_.sequence_number} ({round_.id}) "
        f"status={round_.status.value} options={','.join(round_.options)}"
    )
    if round_.winning_option is not None:
        multiplier = round_.multiplier_for(round_.winning_option)
        line += f" winner={round_.winning_option}"
        if multiplier is not None:
            line += f" ({multiplier:g}x)"
    return line


async def watch(
    session: TradingSession,
    categories: list[GameCategory],
    *,
    duration: float | None,
    output_fn: Callable[[str], None] = print,
) -> int:
    session.projection.on_change(lambda _category, round_: output_fn(render_round(round_)))

    def on_tick(tick: TimerTick) -> None:
        output_fn(f"  {tick.round_id} closes in {format_countdown(tick.time_left)}")

    session.dispatcher.on(RoundEventKind.TIMER_TICK, on_tick)
    try:
        await session.start(categories)
    except ChannelError as exc:
        output_fn(f"connection failed: {exc}")
        await session.close()
        return 1
    names = ", ".join(category.value for category in categories)
    output_fn(f"watching {names} via {session.connection.transport_name}")
    try:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        await session.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Watch live trading rounds over the push channel.")
    subcommands = parser.add_subparsers(dest="command", required=True)
    watch_parser = subcommands.add_parser("watch", help="Join category rooms and print round updates.")
    watch_parser.add_argument(
        "--category",
        action="append",
        choices=[category.value for category in GameCategory],
        help="Game category to follow; repeatable. Defaults to all.",
    )
    watch_parser.add_argument("--token", default=None, help="Session token; overrides the credential file.")
    watch_parser.add_argument("--duration", type=float, default=None, help="Stop after N seconds.")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level name.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = load_settings()
    credentials = StaticCredentialProvider(args.token) if args.token else None
    session = TradingSession(settings, credentials=credentials)
    categories = [GameCategory.parse(name) for name in (args.category or [c.value for c in GameCategory])]
    try:
        return asyncio.run(watch(session, categories, duration=args.duration))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
