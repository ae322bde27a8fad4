import argparse

from netkit.core.cli.models import CLIOptions
from netkit.core.dns.models import RecordType
from netkit.core.validators.sanitizer import sanitize_domain

MAX_HOPS_LIMIT = 50


class CLIHandler:
    """Handles CLI argument parsing and validation"""

    @staticmethod
    def build_parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="netkit",
            description="Network diagnostics: DNS lookups and redirect tracing",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        )

        common = argparse.ArgumentParser(add_help=False)
        common.add_argument(
            "--json", action="store_true", help="Print results as JSON"
        )
        common.add_argument(
            "--verbose", "-v", action="store_true", help="Enable debug logging"
        )

        subparsers = parser.add_subparsers(dest="command", required=True)

        dns_parser = subparsers.add_parser(
            "dns", parents=[common], help="Look up DNS records"
        )
        dns_parser.add_argument("targets", nargs="+", help="Domains or IP addresses")
        dns_parser.add_argument(
            "--type",
            "-t",
            dest="record_type",
            default="A",
            type=str.upper,
            choices=[t.value for t in RecordType],
            help="Record type to query",
        )
        dns_parser.add_argument(
            "--gate-timeout",
            "-gt",
            type=float,
            help="Seconds to wait for a free lookup slot (default from NETKIT_GATE_TIMEOUT or 5)",
        )

        trace_parser = subparsers.add_parser(
            "trace", parents=[common], help="Trace HTTP redirects"
        )
        trace_parser.add_argument("targets", nargs="+", help="URLs to trace")
        trace_parser.add_argument(
            "--max-hops",
            "-m",
            type=int,
            help="Redirects to follow (default from NETKIT_MAX_HOPS or 10)",
        )
        trace_parser.add_argument(
            "--insecure",
            "-k",
            action="store_true",
            help="Do not verify TLS certificates",
        )

        return parser

    @classmethod
    def parse_args(cls, argv: list[str] | None = None) -> CLIOptions:
        parser = cls.build_parser()
        args = parser.parse_args(argv)

        if args.command == "dns":
            args.targets = [sanitize_domain(target) for target in args.targets]
            if args.gate_timeout is not None and args.gate_timeout <= 0:
                parser.error("argument --gate-timeout/-gt: must be greater than 0")
        else:
            args.targets = [target.strip() for target in args.targets]
            if args.max_hops is not None and not 1 <= args.max_hops <= MAX_HOPS_LIMIT:
                parser.error(
                    f"argument --max-hops/-m: must be between 1 and {MAX_HOPS_LIMIT}"
                )

        return CLIOptions(**vars(args))
