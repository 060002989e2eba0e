"""CLI entrypoint for the generation engine."""

import argparse
import asyncio
import json
import logging
import os
import sys
import warnings
from pathlib import Path

from interview_engine.core.config import DEFAULT_MODEL, LLM_PROVIDER, API_KEY_ENV_VAR

# Suppress LiteLLM's direct prints (must be before import)
os.environ["LITELLM_LOG"] = "ERROR"

# Suppress noisy warnings before any imports
warnings.filterwarnings("ignore", message="Pydantic serializer warnings")
warnings.filterwarnings("ignore", message="Unclosed connection")
warnings.filterwarnings("ignore", message="Unclosed client session")
warnings.filterwarnings("ignore", category=ResourceWarning)

# Suppress noisy loggers (HTTP clients, LiteLLM internals)
for logger_name in ["httpx", "httpcore", "litellm", "LiteLLM",
                    "LiteLLM Proxy", "LiteLLM Router", "aiohttp", "asyncio"]:
    logging.getLogger(logger_name).setLevel(logging.ERROR)

import litellm  # noqa: E402 - must be after logging config
from dotenv import load_dotenv  # noqa: E402
from pydantic import ValidationError  # noqa: E402

# Load environment variables
load_dotenv()

litellm.suppress_debug_info = True


def load_run_input(path: Path) -> dict:
    """Read a run input file.

    Format:
        {
          "instructions": "optional extra instructions",
          "items": [{"id": "q1", "category": "item-list", "text": "...", "priority_tier": 5}],
          "entities": [{"id": "s1", "category": "profile", "text": "..."}],
          "shared_context": [...],
          "sections": {"project_summary": "...", "question_answers": "..."}
        }

    Items take "size_estimate" if given, otherwise it is computed. Named
    sections become extra context (assignment) or extra content (text).
    """
    from interview_engine.core.catalog import items_from_sections
    from interview_engine.pydantic_models.content_models import ContentItem

    raw = json.loads(path.read_text(encoding="utf-8"))

    def to_items(entries: list[dict]) -> list[ContentItem]:
        items = []
        for entry in entries:
            if "size_estimate" in entry:
                items.append(ContentItem.model_validate(entry))
            else:
                items.append(ContentItem.from_text(
                    entry["id"], entry["category"], entry["text"], entry.get("priority_tier"),
                ))
        return items

    return {
        "instructions": raw.get("instructions", ""),
        "items": to_items(raw.get("items", [])),
        "entities": to_items(raw.get("entities", [])),
        "shared_context": to_items(raw.get("shared_context", [])),
        "sections": items_from_sections(raw.get("sections", {})),
    }


async def run(
    input_path: str,
    mode: str,
    config_path: str | None = None,
    output: str | None = None,
    model: str | None = None,
    verbose: bool = False,
    log_dir: str | None = None,
) -> dict | None:
    """Run one generation from an input file.

    Args:
        input_path: Run input JSON (see load_run_input).
        mode: "assignment" or "text".
        config_path: BudgetConfig JSON; defaults apply when omitted.
        output: Output JSON path. Defaults to outputs/<input>_<mode>.json.
        model: Model identifier; defaults to DEFAULT_MODEL.
        verbose: DEBUG level console logging.
        log_dir: Directory for log files.

    Returns:
        Result dict, or None on failure.
    """
    # Import here to avoid circular imports
    from interview_engine.core.cost_tracker import CostTracker
    from interview_engine.core.errors import ServiceFatalError
    from interview_engine.core.llm_client import LiteLLMCompletionClient
    from interview_engine.core.llm_router import build_router
    from interview_engine.core.pipeline_logger import get_logger
    from interview_engine.orchestrator import generate
    from interview_engine.pydantic_models.content_models import BudgetConfig, GenerationMode

    input_path = Path(input_path)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}")
        return None

    # Check API key (provider-dependent)
    if not os.environ.get(API_KEY_ENV_VAR):
        print(f"Error: {API_KEY_ENV_VAR} not set")
        if LLM_PROVIDER == "azure":
            print("For Azure, set: AZURE_API_KEY, AZURE_API_BASE, AZURE_API_VERSION")
        else:
            print(f"Set it in .env or export {API_KEY_ENV_VAR}=...")
        return None

    try:
        run_input = load_run_input(input_path)
        if config_path:
            budget_config = BudgetConfig.model_validate_json(Path(config_path).read_text(encoding="utf-8"))
        else:
            budget_config = BudgetConfig()
    except (OSError, ValueError, KeyError, ValidationError) as e:
        print(f"Error: Invalid input: {e}")
        return None

    generation_mode = GenerationMode(mode)
    items = run_input["items"]
    shared_context = run_input["shared_context"] + run_input["sections"]
    if generation_mode is GenerationMode.TEXT:
        items, shared_context = items + shared_context, []

    resolved_model = model or DEFAULT_MODEL
    cost_tracker = CostTracker()
    client = LiteLLMCompletionClient(
        model=resolved_model,
        cost_tracker=cost_tracker,
        router=build_router([resolved_model]) if model else None,
    )

    print(f"\n{'='*50}")
    print(f"Generating: {input_path.name} ({generation_mode.value})")
    print(f"{'='*50}")
    print(f"  Provider: {LLM_PROVIDER}")
    print(f"  Model: {resolved_model.split('/')[-1]}")
    print(f"  Items: {len(items)}")
    if run_input["entities"]:
        print(f"  Entities: {len(run_input['entities'])}")
    print(f"  Capacity: {budget_config.capacity} (batch {budget_config.chunk_batch_size})")
    print()

    logger = get_logger(verbose=verbose, log_dir=log_dir, console=True)
    try:
        result = await generate(
            items,
            budget_config,
            generation_mode,
            client=client,
            instructions=run_input["instructions"],
            entities=run_input["entities"],
            shared_context=shared_context,
            logger=logger,
        )
    except (ServiceFatalError, ValueError) as e:
        print(f"\n[ERROR] Generation failed: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return None

    result_dict = result.to_dict()
    output_file = Path(output) if output else Path("outputs") / f"{input_path.stem}_{generation_mode.value}.json"
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(result_dict, f, indent=2, ensure_ascii=False)
    print(f"\n[OUTPUT] {output_file}")

    for warning in result.warnings:
        print(f"[WARNING] {warning}")
    if result.failed_chunk_indices:
        print(f"[WARNING] Failed chunks: {result.failed_chunk_indices}")

    # Print cost summary
    if cost_tracker.call_count > 0:
        print(f"\n{cost_tracker.summary()}")

    return result_dict


def main():
    parser = argparse.ArgumentParser(
        description="Bounded context assembly and multi-call generation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  interview-engine run round.json --mode assignment
  interview-engine run project.json --mode text --config budget.json -o doc.json
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run one generation")
    run_parser.add_argument("input", help="Path to run input JSON")
    run_parser.add_argument(
        "--mode",
        choices=["assignment", "text"],
        required=True,
        help="Generation mode",
    )
    run_parser.add_argument(
        "--config",
        default=None,
        help="Path to BudgetConfig JSON (default: built-in limits)",
    )
    run_parser.add_argument(
        "-o", "--output",
        default=None,
        help="Output JSON file (default: outputs/<input>_<mode>.json)",
    )
    run_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with DEBUG level logging",
    )
    run_parser.add_argument(
        "--model",
        default=None,
        help=f"Model identifier (default: {DEFAULT_MODEL})",
    )
    run_parser.add_argument(
        "--log-dir",
        default=None,
        help="Directory for log files (default: no file logging)",
    )

    args = parser.parse_args()

    result = asyncio.run(run(
        args.input,
        args.mode,
        config_path=args.config,
        output=args.output,
        model=args.model,
        verbose=args.verbose,
        log_dir=args.log_dir,
    ))

    sys.exit(0 if result is not None else 1)


if __name__ == "__main__":
    main()
