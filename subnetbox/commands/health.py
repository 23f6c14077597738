"""
Health verification - probe every node endpoint once the cluster is up.

Each probe returns an ok/fail result dict. Failures are reported in the
summary table and never raised.
"""

import logging
import sys
from typing import Any, Optional

import click
import requests
from rich import box
from rich.markup import escape
from rich.table import Table

from subnetbox.commands.constants import (
    DEFAULT_VALIDATOR_COUNT,
    HEALTH_CHECK_TIMEOUT,
    MAX_VALIDATOR_COUNT,
    PROMETHEUS_HOST_PORT,
)
from subnetbox.commands.deploy.state import NodeSpec, build_node_specs
from subnetbox.commands.result import fail, ok
from subnetbox.commands.utils import console, print_section

logger = logging.getLogger(__name__)


def _json_rpc(method: str, request_id: int = 1) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "method": method, "params": [], "id": request_id}


def _probe(
    session: requests.Session,
    name: str,
    method: str,
    url: str,
    **kwargs: Any,
) -> dict[str, Any]:
    try:
        response = session.request(method, url, timeout=HEALTH_CHECK_TIMEOUT, **kwargs)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.debug("%s probe failed: %s", name, e)
        return fail(f"{name} unreachable", error=e, check=name, url=url)
    return ok(response.text, check=name, url=url)


def check_eth_api(session: requests.Session, node: NodeSpec) -> dict[str, Any]:
    url = f"http://localhost:{node.eth_api}"
    result = _probe(
        session,
        f"{node.name} eth api",
        "POST",
        url,
        json=_json_rpc("eth_blockNumber", 83),
    )
    if result["success"] and '"result"' not in result["data"]:
        return fail(
            f"{node.name} eth api returned no block number",
            check=result["check"],
            url=url,
        )
    return result


def check_objects_api(session: requests.Session, node: NodeSpec) -> dict[str, Any]:
    return _probe(
        session,
        f"{node.name} objects api",
        "GET",
        f"http://localhost:{node.objects}/health",
    )


def check_metrics(session: requests.Session, node: NodeSpec) -> dict[str, Any]:
    return _probe(
        session,
        f"{node.name} metrics",
        "GET",
        f"http://localhost:{node.metrics}/metrics",
    )


def check_prometheus(
    session: requests.Session, port: int = PROMETHEUS_HOST_PORT
) -> dict[str, Any]:
    return _probe(session, "prometheus", "GET", f"http://localhost:{port}/graph")


def verify_health(
    nodes: list[NodeSpec], session: Optional[requests.Session] = None
) -> list[dict[str, Any]]:
    """
    Probe every node and the prometheus server, print a table and return
    the individual results.
    """
    print_section("Verifying node endpoints")
    session = session or requests.Session()

    results = [check_eth_api(session, node) for node in nodes]
    results.extend(check_objects_api(session, node) for node in nodes)
    results.append(check_prometheus(session))
    results.extend(check_metrics(session, node) for node in nodes)

    console.print(create_health_table(results))
    failed = [r for r in results if not r["success"]]
    if failed:
        console.print(
            f"[yellow]⚠️  {len(failed)} of {len(results)} health checks failed[/yellow]"
        )
    else:
        console.print(f"[green]✓ All {len(results)} health checks passed[/green]")
    return results


def create_health_table(results: list[dict[str, Any]]) -> Table:
    table = Table(title="Health Checks", box=box.ROUNDED)
    table.add_column("Check", style="cyan")
    table.add_column("URL", style="blue")
    table.add_column("Status")

    for result in results:
        status = "[green]✓ ok[/green]" if result["success"] else f"[red]✗ {escape(result['error'])}[/red]"
        table.add_row(result["check"], result["url"], status)
    return table


def chain_id(
    eth_api_port: int, session: Optional[requests.Session] = None
) -> Optional[int]:
    """Return the subnet's chain id from ``eth_chainId``, or None if unavailable."""
    session = session or requests.Session()
    try:
        response = session.post(
            f"http://localhost:{eth_api_port}",
            json=_json_rpc("eth_chainId"),
            timeout=HEALTH_CHECK_TIMEOUT,
        )
        response.raise_for_status()
        return int(response.json()["result"], 16)
    except (requests.RequestException, KeyError, TypeError, ValueError) as e:
        logger.debug("eth_chainId failed: %s", e)
        return None


@click.command(name="health")
@click.option(
    "--validators",
    type=click.IntRange(1, MAX_VALIDATOR_COUNT),
    default=DEFAULT_VALIDATOR_COUNT,
    show_default=True,
    help="Number of validator nodes to probe",
)
def health_command(validators):
    """Probe the endpoints of a running deployment."""
    results = verify_health(build_node_specs(validators))
    if not all(r["success"] for r in results):
        sys.exit(1)
