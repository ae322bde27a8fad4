from dataclasses import dataclass, field


@dataclass
class CLIOptions:
    command: str = "dns"
    targets: list[str] = field(default_factory=list)
    record_type: str = "A"
    max_hops: int | None = None
    gate_timeout: float | None = None
    insecure: bool = False
    json: bool = False
    verbose: bool = False
