import argparse
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger
from rich.markup import escape

from zonesweep.cli.internals import ArgparseModel, CLIGroup, cli_arg
from zonesweep.core._logging import configure_lib_logger
from zonesweep.modules.dns_sweep import DnsConfig, NameserverError, SessionController
from zonesweep.modules.target import DEFAULT_NAMESERVER, QueryTarget

BANNER = "zonesweep - list every DNS record a nameserver will give out for a domain"

EXAMPLE = "Example: zonesweep -d zonetransfer.me -ns nsztm2.digi.ninja:53"


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {number}")
    return number


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {number}")
    return number


@dataclass
class SweepArgs(ArgparseModel):
    domain: str | None = cli_arg(
        "-d",
        "--domain",
        metavar="DOMAIN",
        help="Domain to enumerate",
    )
    nameserver: str = cli_arg(
        "-ns",
        "--nameserver",
        default=DEFAULT_NAMESERVER,
        metavar="NAMESERVER",
        help="Nameserver to query as host or host:port, port 53 is assumed",
    )
    timeout: float = cli_arg(
        "--timeout",
        default=5.0,
        type=_positive_float,
        metavar="SECONDS",
        help="Timeout of each exchange with the nameserver",
    )
    max_attempts: int | None = cli_arg(
        "--max-attempts",
        type=_positive_int,
        metavar="N",
        help="Give up on a record type after N failed attempts, retries forever when unset",
    )
    retry_deadline: float | None = cli_arg(
        "--retry-deadline",
        type=_positive_float,
        metavar="SECONDS",
        help="Give up on a record type after retrying it for this long",
    )
    deadline: float | None = cli_arg(
        "--deadline",
        type=_positive_float,
        metavar="SECONDS",
        help="Abort the whole run after this long",
    )
    verbose: bool = cli_arg(
        "-v",
        "--verbose",
        default=False,
        action="store_true",
        help="Log progress and retries to stderr",
    )

    def to_config(self) -> DnsConfig:
        return DnsConfig(
            timeout=self.timeout,
            max_attempts=self.max_attempts,
            retry_deadline=self.retry_deadline,
            deadline=self.deadline,
        )


class SweepGroup(CLIGroup[SweepArgs]):
    model = SweepArgs

    def error(self, message: str) -> int:
        self.err_console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)
        return 1

    async def routine(self, args: SweepArgs) -> int:
        configure_lib_logger(level_name="DEBUG" if args.verbose else "WARNING")

        if not args.domain:
            self.parser.print_help()
            return 0

        try:
            target = QueryTarget.create(domain=args.domain, nameserver=args.nameserver)
        except ValueError as exc:
            return self.error(str(exc))

        if args.verbose:
            self.err_console.print(args.show())
        session = SessionController.create(config=args.to_config())
        try:
            result = await session.run(target)
        except NameserverError as exc:
            return self.error(str(exc))
        except TimeoutError:
            return self.error(
                f"Enumerating {target.domain} did not finish within {args.deadline} seconds"
            )

        for line in result.lines():
            self.console.print(line, markup=False, soft_wrap=True)
        logger.info(result.summary())
        return 0


def create_app() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zonesweep",
        description=BANNER,
        epilog=EXAMPLE,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    group = SweepGroup(parser)
    parser.set_defaults(func=group)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = create_app()
    args = parser.parse_args(argv)
    return args.func(args)


def run() -> None:
    raise SystemExit(main())
