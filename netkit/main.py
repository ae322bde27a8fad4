import asyncio
import dataclasses
import sys
import traceback

from netkit.core.cli.handler import CLIHandler
from netkit.core.cli.models import CLIOptions
from netkit.core.dns.lookup import DnsResolver
from netkit.core.dns.models import DnsOutcome, RecordType
from netkit.core.logging.logger import set_log_level, setup_logger
from netkit.core.report.formatter import format_dns_outcome, format_redirect_outcome
from netkit.core.report.json_utils import json_dumps
from netkit.core.settings import ProbeSettings
from netkit.core.web.models import RedirectOutcome
from netkit.core.web.redirects import RedirectTracer

logger = setup_logger("netkit")


class ProbeRunner:
    """
    Owns one DNS resolver and one redirect tracer and runs batches of
    probes against them concurrently. Batches of lookups share the
    resolver's gate.
    """

    def __init__(self, settings: ProbeSettings | None = None):
        self.settings = settings or ProbeSettings()
        self.resolver = DnsResolver(self.settings)
        self.tracer = RedirectTracer(self.settings)

    async def lookup(
        self, domain: str, record_type: str | RecordType = RecordType.A
    ) -> DnsOutcome:
        return await self.resolver.lookup(domain, record_type)

    async def trace(self, url: str, max_hops: int | None = None) -> RedirectOutcome:
        return await self.tracer.trace(url, max_hops)

    async def lookup_many(
        self, domains: list[str], record_type: str | RecordType = RecordType.A
    ) -> list[DnsOutcome]:
        return list(
            await asyncio.gather(*(self.lookup(d, record_type) for d in domains))
        )

    async def trace_many(
        self, urls: list[str], max_hops: int | None = None
    ) -> list[RedirectOutcome]:
        return list(await asyncio.gather(*(self.trace(u, max_hops) for u in urls)))

    def shutdown(self) -> None:
        """Safe to call more than once."""
        self.resolver.shutdown()


def build_settings(cli_options: CLIOptions) -> ProbeSettings:
    """Environment settings with command-line overrides applied."""
    settings = ProbeSettings.from_env()
    overrides = {}
    if cli_options.gate_timeout is not None:
        overrides["gate_timeout"] = cli_options.gate_timeout
    if cli_options.max_hops is not None:
        overrides["max_hops"] = cli_options.max_hops
    if cli_options.insecure:
        overrides["verify_ssl"] = False
    return dataclasses.replace(settings, **overrides)


def render(outcomes: list, as_json: bool) -> str:
    if as_json:
        return json_dumps(outcomes, indent=2)

    blocks = []
    for outcome in outcomes:
        if isinstance(outcome, DnsOutcome):
            blocks.append(format_dns_outcome(outcome))
        else:
            blocks.append(format_redirect_outcome(outcome))
    return "\n\n".join(blocks)


async def start(cli_options: CLIOptions) -> int:
    """
    Run the probes requested on the command line and print the results.
    Returns the process exit status.
    """
    if cli_options.verbose:
        set_log_level("DEBUG")

    runner = ProbeRunner(build_settings(cli_options))
    try:
        if cli_options.command == "dns":
            outcomes = await runner.lookup_many(
                cli_options.targets, cli_options.record_type
            )
        else:
            outcomes = await runner.trace_many(
                cli_options.targets, cli_options.max_hops
            )
    finally:
        runner.shutdown()

    print(render(outcomes, cli_options.json))

    failed = [o for o in outcomes if not o.success]
    if failed:
        logger.warning(f"{len(failed)} of {len(outcomes)} probe(s) failed")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    try:
        cli_options = CLIHandler.parse_args(argv)
    except ValueError as e:
        logger.error(f"Error: {e}")
        return 2

    try:
        return asyncio.run(start(cli_options))
    except KeyboardInterrupt:
        logger.info("Process interrupted by user.")
        return 130
    except Exception as e:
        logger.error(f"Error: {e}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
