import argparse
import asyncio
import logging

from parlor.models import HostConfig

from .server import HostServer

logging.basicConfig(level=logging.INFO)


def main() -> None:
    parser = argparse.ArgumentParser(description="Party game WebSocket host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument(
        "--turn-time",
        type=int,
        default=60_000,
        help="Turn time in milliseconds before the game is force-advanced (0 disables)",
    )
    parser.add_argument(
        "--grace",
        type=float,
        default=60.0,
        help="Seconds a finished game stays viewable before it is archived",
    )
    parser.add_argument("--reap-interval", type=float, default=5.0)
    args = parser.parse_args()

    config = HostConfig(
        turn_time_ms=args.turn_time,
        grace_period_s=args.grace,
        reap_interval_s=args.reap_interval,
    )

    server = HostServer(config)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
