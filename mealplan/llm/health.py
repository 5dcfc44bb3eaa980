"""
OpenRouter Health Check - Test actual connectivity and responsiveness.

Usage:
    python -m mealplan.llm.health --config config/openrouter.yaml
    python -m mealplan.llm.health --model openai/gpt-4o-mini
    python -m mealplan.llm.health --json
"""

import argparse
import json
import sys
import time
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from pathlib import Path

from mealplan.logger import get_logger

from .config import config_from_env, load_config
from .openrouter import OpenRouterClient
from .response import ChatOptions, Message

logger = get_logger(__name__)

HEALTH_PROMPT = "Respond with the single word: OK"


@dataclass
class HealthReport:
    """Health status for the configured OpenRouter connection."""

    healthy: bool
    model: str | None = None
    latency_ms: int | None = None
    remaining_budget: float | None = None
    error: str | None = None
    config_source: str | None = None
    timestamp: str | None = None


def check_health(client: OpenRouterClient, model: str | None = None) -> HealthReport:
    """Check connectivity by making a minimal chat request.

    Args:
        client: Configured OpenRouter client
        model: Model to test with (client default if omitted)

    Returns:
        HealthReport with status information
    """
    target_model = model or client.config.default_model
    report = HealthReport(
        healthy=False,
        model=target_model,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )

    start_time = time.time()
    try:
        response = client.chat(
            [Message(role="user", content=HEALTH_PROMPT)],
            ChatOptions(model=target_model, params={"temperature": 0.0, "max_tokens": 10}),
        )
        report.latency_ms = int((time.time() - start_time) * 1000)
        report.remaining_budget = client.get_remaining_budget()

        if response.message.content.strip():
            report.healthy = True
        else:
            report.error = "Empty response from provider"

    except Exception as e:
        report.latency_ms = int((time.time() - start_time) * 1000)
        report.error = str(e)

    return report


def run_health_check(
    config_path: str | None = None,
    model: str | None = None,
    timeout_s: float = 10.0,
) -> HealthReport:
    """Load configuration, build a client and check it.

    Configuration errors are reported as an unhealthy result rather than raised.
    """
    source = config_path or "environment"
    try:
        if config_path:
            config = load_config(Path(config_path))
        else:
            config = config_from_env()
        config = replace(config, timeout_s=timeout_s, max_retries=0)
        client = OpenRouterClient(config)
    except Exception as e:
        logger.error(
            "health.config_error",
            event="health.config_error",
            config_source=source,
            error_message=str(e),
        )
        return HealthReport(healthy=False, model=model, error=str(e), config_source=source)

    report = check_health(client, model=model)
    report.config_source = source
    return report


def print_health_report(report: HealthReport) -> None:
    """Print health check report."""
    print("OpenRouter Health Check")
    print("=" * 60)
    print()
    print(f"Config: {report.config_source}")
    print(f"Model:  {report.model}")
    print()

    if report.healthy:
        latency = f"{report.latency_ms}ms" if report.latency_ms is not None else "N/A"
        print(f"Status: ✓ HEALTHY (latency: {latency}, remaining budget: {report.remaining_budget})")
    else:
        error = report.error or "Unknown error"
        latency_info = f" (latency: {report.latency_ms}ms)" if report.latency_ms else ""
        print(f"Status: ✗ UNHEALTHY: {error}{latency_info}")


def print_health_json(report: HealthReport) -> None:
    """Print health check result as JSON."""
    print(json.dumps(asdict(report), indent=2))


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Check connectivity to the OpenRouter completion API"
    )
    parser.add_argument(
        "--config",
        help="Path to YAML configuration file (default: read from environment)",
    )
    parser.add_argument(
        "--model",
        help="Model to test (default: configured default model)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Request timeout in seconds (default: 10)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON",
    )

    args = parser.parse_args(argv)

    report = run_health_check(
        config_path=args.config,
        model=args.model,
        timeout_s=args.timeout,
    )

    if args.json:
        print_health_json(report)
    else:
        print_health_report(report)

    return 0 if report.healthy else 1


if __name__ == "__main__":
    sys.exit(main())
