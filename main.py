"""groundwork - grounding-source discovery

Simple CLI for turning a research topic into scored primary sources.
"""

import argparse
import asyncio
import json
import sys

from groundwork.agents.orchestrator import GroundingPipeline
from groundwork.config import settings
from groundwork.errors import PipelineError
from groundwork.models.events import PipelineEvent
from groundwork.models.sources import Provider


def print_event(event: PipelineEvent) -> None:
    event_type = event.event.value
    data = event.data

    if event_type == "stage_started":
        print(f"\n[~] Starting {data.get('stage')} stage...")

    elif event_type == "stage_completed":
        counts = {k: v for k, v in data.items() if k.endswith("_count") or k == "feed_selected"}
        detail = ", ".join(f"{k}={v}" for k, v in counts.items())
        print(f"  [+] {data.get('stage')} complete{': ' + detail if detail else ''}")

    elif event_type == "provider_result":
        print(f"  [+] {data.get('provider')}: {data.get('results_count')} results")

    elif event_type == "provider_failed":
        print(f"  [-] {data.get('provider')} failed: {data.get('reason')}")

    elif event_type == "sources_ready":
        print(f"\n[*] Discovery Complete!")
        print(f"   Runtime: {data.get('runtime_ms')}ms")
        print(f"   Sources: {len(data.get('sources', []))}")

    elif event_type == "error":
        print(f"\n[!] Error ({data.get('checkpoint', 'pipeline')}): {data.get('message', 'Unknown error')}")


async def run_discovery(
    topic: str,
    providers: list[str] | None = None,
    model: str | None = None,
    threshold: float | None = None,
    max_sources: int | None = None,
    as_json: bool = False,
) -> int:
    """Run source discovery on the given topic; returns the process exit code."""
    if not as_json:
        print(f"Topic: {topic}")
        print("-" * 50)

    pipeline = GroundingPipeline(settings, model=model)
    try:
        sources = await pipeline.discover(
            topic,
            providers=providers,
            progress=None if as_json else print_event,
            threshold=threshold,
            max_sources=max_sources,
        )
    except PipelineError as exc:
        if as_json:
            print(json.dumps({"error": exc.to_dict()}))
        return 1

    if as_json:
        print(json.dumps([s.model_dump(mode="json", by_alias=True) for s in sources], indent=2))
        return 0

    print(f"\n{'='*50}")
    print("SOURCES:")
    print(f"{'='*50}")
    for i, source in enumerate(sources, 1):
        print(f"{i}. [{source.reliability:.2f}] {source.title}")
        print(f"   {source.uri} ({source.origin.value})")
        if source.content:
            print(f"   {source.content[:300]}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="groundwork source discovery")
    parser.add_argument("--topic", "-t", required=True, help="Research topic")
    parser.add_argument(
        "--provider",
        "-p",
        action="append",
        choices=[p.value for p in Provider],
        help="Enable a provider (repeatable; default: all)",
    )
    parser.add_argument("--model", "-m", help="Model to use (default: from config)")
    parser.add_argument("--threshold", type=float, help="Minimum reliability to keep a source")
    parser.add_argument("--max-sources", type=int, help="Maximum number of sources returned")
    parser.add_argument("--json", action="store_true", help="Print the sources as JSON")

    args = parser.parse_args()

    sys.exit(
        asyncio.run(
            run_discovery(
                args.topic,
                providers=args.provider,
                model=args.model,
                threshold=args.threshold,
                max_sources=args.max_sources,
                as_json=args.json,
            )
        )
    )


if __name__ == "__main__":
    main()
