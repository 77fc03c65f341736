"""List command for wsldoctor CLI."""

from __future__ import annotations

import typer

from wsldoctor.reporting import catalog_to_dict, probes_to_dict

from ..helpers import build_orchestrator, load_config
from ..output import get_renderer, print_json


def list_remediations(
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output probes and remediations as JSON",
    ),
) -> None:
    """List the registered probes and available remediations.

    Remediations are marked when they need root or are destructive (and
    will ask for confirmation), along with the probes each one re-checks.

    Examples:
        wsldoctor list
        wsldoctor list --json
    """
    config = load_config()
    orchestrator = build_orchestrator(config, json_output=json_output)
    probes = orchestrator.registry.all_probes()
    listing = orchestrator.catalog.list()

    if json_output:
        print_json({"probes": probes_to_dict(probes), "remediations": catalog_to_dict(listing)})
        return
    renderer = get_renderer()
    renderer.render_probes(probes)
    renderer.render_catalog(listing)
