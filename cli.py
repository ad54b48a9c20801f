import argparse
import json
import os
import sys
import uuid as _uuid
from pathlib import Path

from config.settings import get_settings
from models.extraction_request import OptimizationMode, ProfileKind
from services.extraction_service import extract_profile
from services.html_preprocessor import check_token_budget, preprocess
from services.errors import RequestValidationError
from services.prompt_builder import build_prompt
from services.reporting import print_summary
from utils.logging_setup import init_logging


def _mode_arg(value: str) -> str:
    try:
        OptimizationMode.parse(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"unknown mode: {value}")
    return value


def cmd_extract(args):
    if not os.getenv("RUN_ID"):
        os.environ["RUN_ID"] = _uuid.uuid4().hex
    html = Path(args.html).read_text(encoding="utf-8")
    payload = {"html": html, "url": args.url, "isOwnProfile": bool(args.own)}
    if args.mode:
        payload["optimizationMode"] = args.mode
    result = extract_profile(payload)
    output_path = None
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(result, indent=2, ensure_ascii=False), encoding="utf-8")
    else:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    print_summary(result, output_path)
    return 0 if result.get("success") else 1


def cmd_prompt(args):
    prompt = build_prompt(ProfileKind(args.kind))
    print("=== SYSTEM ===")
    print(prompt.system)
    print("=== USER ===")
    print(prompt.user)
    return 0


def cmd_preprocess(args):
    html = Path(args.html).read_text(encoding="utf-8")
    mode = OptimizationMode.parse(args.mode) or OptimizationMode.PRESERVE_STRUCTURE
    doc = preprocess(html, mode)
    stats = {
        "mode": doc.mode.value,
        "originalSizeBytes": doc.original_size_bytes,
        "finalSizeBytes": doc.final_size_bytes,
        "reductionPct": doc.reduction_pct,
        "estimatedTokens": doc.estimated_tokens,
        "fallbackUsed": doc.fallback_used,
    }
    try:
        check_token_budget(doc)
        stats["withinBudget"] = True
    except RequestValidationError:
        stats["withinBudget"] = False
    print(json.dumps(stats, indent=2))
    if args.show:
        print(doc.text)
    return 0


def main():
    settings = get_settings()
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="Profile extraction CLI")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_ext = sub.add_parser("extract", help="Extract a structured profile from a saved profile page")
    p_ext.add_argument("--html", required=True, help="Path to the captured profile HTML")
    p_ext.add_argument("--url", required=True, help="Profile URL the page was captured from")
    p_ext.add_argument("--own", action="store_true", help="The page is the user's own profile")
    p_ext.add_argument("--mode", type=_mode_arg, default=None, help="preserve_structure | aggressive_reduce (default by profile kind)")
    p_ext.add_argument("--output", "-o", default=None, help="Write the JSON result to this file")
    p_ext.set_defaults(func=cmd_extract)

    p_pr = sub.add_parser("prompt", help="Print the extraction prompt pair")
    p_pr.add_argument("--kind", choices=[k.value for k in ProfileKind], default=ProfileKind.TARGET.value)
    p_pr.set_defaults(func=cmd_prompt)

    p_pp = sub.add_parser("preprocess", help="Show size/token stats of the cleaned HTML")
    p_pp.add_argument("--html", required=True, help="Path to the captured profile HTML")
    p_pp.add_argument("--mode", type=_mode_arg, default=None, help="preserve_structure (default) | aggressive_reduce")
    p_pp.add_argument("--show", action="store_true", help="Also print the cleaned text")
    p_pp.set_defaults(func=cmd_preprocess)

    args = parser.parse_args()
    code = args.func(args)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
