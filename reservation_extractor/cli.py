"""CLI entrypoint for reservation extraction."""

import argparse
import asyncio
import json
import logging
import os
import sys
import warnings
from pathlib import Path

# Suppress LiteLLM's direct prints (must be before import)
os.environ["LITELLM_LOG"] = "ERROR"

warnings.filterwarnings("ignore", message="Pydantic serializer warnings")
warnings.filterwarnings("ignore", message="Unclosed client session")
warnings.filterwarnings("ignore", category=ResourceWarning)

# Suppress noisy loggers (HTTP clients, LiteLLM internals)
for logger_name in ["httpx", "httpcore", "litellm", "LiteLLM",
                    "LiteLLM Router", "aiohttp", "asyncio"]:
    logging.getLogger(logger_name).setLevel(logging.ERROR)

import litellm  # noqa: E402
from dotenv import load_dotenv  # noqa: E402

from reservation_extractor.core import (  # noqa: E402
    CostTracker,
    PipelineSettings,
    StaticPropertyCatalog,
    UnreadableDocumentError,
    extract_text,
    get_logger,
    load_catalog,
)
from reservation_extractor.core.response_repair import coerce_records, repair_response  # noqa: E402
from reservation_extractor.pydantic_models import DocumentKind, RawDocument, RunStatus  # noqa: E402
from reservation_extractor.service import ExtractionService  # noqa: E402

litellm.suppress_debug_info = True


def guess_kind(path: Path) -> DocumentKind:
    return DocumentKind.PDF if path.suffix.lower() == ".pdf" else DocumentKind.TEXT


async def extract(
    path: str,
    catalog_path: str | None = None,
    provider: str | None = None,
    kind: str | None = None,
    output_dir: str = "output",
    verbose: bool = False,
) -> dict | None:
    """Run the extraction pipeline on one file.

    Args:
        path: Document path.
        catalog_path: Property catalog JSON. Without it nothing resolves.
        provider: Force a single provider.
        kind: Declared kind ("pdf", "text", MIME type). Guessed from the suffix.
        output_dir: Directory for output files.
        verbose: Verbose output.

    Returns:
        The result as a JSON-ready dict, or None when the file is missing.
    """
    file_path = Path(path)
    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        return None

    output_dir = Path(output_dir)
    json_dir = output_dir / "json"
    logs_dir = output_dir / "logs"
    json_dir.mkdir(parents=True, exist_ok=True)

    settings = PipelineSettings.from_env()
    catalog = load_catalog(catalog_path) if catalog_path else StaticPropertyCatalog()
    cost_tracker = CostTracker()
    service = ExtractionService.from_settings(
        settings,
        catalog,
        cost_tracker=cost_tracker,
        logger=get_logger(verbose=verbose, log_dir=logs_dir),
    )

    available = service.adapter.available()
    print(f"\n{'='*50}")
    print(f"Extracting: {file_path.name}")
    print(f"{'='*50}")
    print(f"  Providers: {', '.join(available) or 'none configured'}")
    print(f"  Selected: {provider or service.adapter.selected() or '-'}")
    print(f"  Catalog: {len(catalog)} properties")
    print()

    result = await service.extract(
        file_path.read_bytes(),
        kind or guess_kind(file_path),
        file_name=file_path.name,
        provider=provider,
    )
    output = result.to_output()

    output_file = json_dir / f"{file_path.stem}.json"
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(output, f, indent=2, ensure_ascii=False)
    print(f"\n[STATUS] {result.status.value}")
    if result.failure_reason:
        print(f"[REASON] {result.failure_reason}")
    print(f"[OUTPUT] {output_file}")

    if cost_tracker.call_count > 0:
        print(f"\n{cost_tracker.summary()}")

    return output


async def compare(path: str, kind: str | None = None, output_dir: str = "output") -> dict | None:
    """Send the same document to every configured provider and report.

    Diagnostics only: responses bypass the cache and are not validated.
    """
    file_path = Path(path)
    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        return None

    settings = PipelineSettings.from_env()
    service = ExtractionService.from_settings(settings, StaticPropertyCatalog())
    document = RawDocument(
        content=file_path.read_bytes(),
        kind=DocumentKind.from_declared(kind or guess_kind(file_path)),
        file_name=file_path.name,
    )
    try:
        text = extract_text(document).text
    except UnreadableDocumentError as e:
        print(f"Error: {e}")
        return None
    if not text:
        print("Error: No text layer, --compare needs a readable document")
        return None

    responses = await service.adapter.compare_providers(text, file_path.name)
    report: dict[str, dict] = {}
    for name, response in responses.items():
        entry = {
            "success": response.success,
            "latencyMs": response.latency_ms,
            "errorKind": response.error_kind.value if response.error_kind else None,
            "error": response.error_message,
        }
        if response.success:
            outcome = repair_response(response.text)
            entry["repairTier"] = outcome.tier.value
            entry["records"] = coerce_records(outcome.value)
        report[name] = entry
        status = "ok" if response.success else f"failed ({entry['errorKind']})"
        print(f"  {name}: {status} in {response.latency_ms:.0f} ms")

    json_dir = Path(output_dir) / "json"
    json_dir.mkdir(parents=True, exist_ok=True)
    output_file = json_dir / f"{file_path.stem}.compare.json"
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, ensure_ascii=False, default=str)
    print(f"\n[OUTPUT] {output_file}")
    return report


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Reservation Extraction Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  reservation-extract "Controlo_Sete Rios.pdf" --catalog properties.json
  reservation-extract booking_email.txt --provider mistral -v
  reservation-extract booking_email.txt --compare
        """,
    )
    parser.add_argument("file", help="Path to PDF or text file")
    parser.add_argument(
        "--catalog",
        default=None,
        help="Property catalog JSON file",
    )
    parser.add_argument(
        "--provider",
        choices=["gemini", "openrouter", "mistral"],
        default=None,
        help="Force a single provider (default: automatic selection)",
    )
    parser.add_argument(
        "--kind",
        default=None,
        help="Declared document kind, e.g. pdf or text/plain (default: from suffix)",
    )
    parser.add_argument(
        "-o", "--output",
        default="output",
        help="Output directory (default: output)",
    )
    parser.add_argument(
        "--compare",
        action="store_true",
        help="Send the document to every configured provider and report each answer",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with DEBUG level logging",
    )

    args = parser.parse_args()

    if args.compare:
        report = asyncio.run(compare(args.file, kind=args.kind, output_dir=args.output))
        sys.exit(0 if report is not None else 1)

    result = asyncio.run(extract(
        path=args.file,
        catalog_path=args.catalog,
        provider=args.provider,
        kind=args.kind,
        output_dir=args.output,
        verbose=args.verbose,
    ))

    sys.exit(0 if result and result["status"] != RunStatus.FAILED.value else 1)


if __name__ == "__main__":
    main()
