"""CLI entrypoints for the chat relay."""

from __future__ import annotations

import argparse
import logging
import sys

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from chatrelay.catalog.ranker import score
from chatrelay.catalog.render import render_model_card
from chatrelay.configuration import (
    DEFAULT_CONFIG_PATH,
    RelaySettings,
    load_relay_settings,
)
from chatrelay.constants import (
    CHAT_PROVIDERS,
    DEFAULT_RANK_LIMIT,
    METRIC_BALANCED,
    MODEL_METRICS,
    POWER_TIERS,
    PROVIDER_FILTER_ALL,
)
from chatrelay.exceptions import RelayError
from chatrelay.logging import configure_console_logging, setup_file_logger
from chatrelay.prompting.detection import is_artifact_request
from chatrelay.service import (
    BuildOutcome,
    ChatReply,
    RelayService,
    format_run_instructions,
)

LOGGER = logging.getLogger(__name__)

PREVIEW_CHARS = 3500


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Relay a prompt to an OpenAI-compatible model, or build project "
            "files from its answer."
        )
    )
    parser.add_argument(
        "prompt",
        nargs="?",
        type=str,
        help="Message to send. Use '-' to read it from stdin.",
    )
    parser.add_argument(
        "--build",
        action="store_true",
        help="Ask for a JSON file bundle and write it to the artifact root.",
    )
    parser.add_argument(
        "--config",
        type=str,
        required=False,
        help=(
            "Path to a YAML config. If omitted, uses "
            "configs/default_config.yaml."
        ),
    )
    parser.add_argument(
        "--user",
        type=str,
        default="local",
        help="Owner id; artifacts are written under <root>/<user>/.",
    )
    parser.add_argument(
        "--provider",
        type=str,
        choices=list(CHAT_PROVIDERS),
        help="Switch provider (its default model for the tier is used).",
    )
    parser.add_argument(
        "--model",
        type=str,
        help="Catalog model id to use (with --provider or the default).",
    )
    parser.add_argument(
        "--power",
        type=str,
        choices=list(POWER_TIERS),
        help="Power tier used for default model selection and --rank.",
    )
    parser.add_argument(
        "--system-prompt",
        type=str,
        help="System prompt sent ahead of the conversation.",
    )
    parser.add_argument(
        "--rank",
        action="store_true",
        help="List catalog models ranked by --metric and exit.",
    )
    parser.add_argument(
        "--metric",
        type=str,
        choices=list(MODEL_METRICS),
        default=METRIC_BALANCED,
        help="Ranking metric for --rank.",
    )
    parser.add_argument(
        "--rank-provider",
        type=str,
        choices=list(CHAT_PROVIDERS) + [PROVIDER_FILTER_ALL],
        default=PROVIDER_FILTER_ALL,
        help="Provider filter for --rank.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_RANK_LIMIT,
        help="Maximum number of models printed by --rank.",
    )
    parser.add_argument(
        "--show-model",
        type=str,
        metavar="PROVIDER/MODEL_ID",
        help="Print the card of one catalog model and exit.",
    )
    parser.add_argument(
        "--list-providers",
        action="store_true",
        help="Print configured providers and whether they have API keys.",
    )
    return parser


def _configure_logging(settings: RelaySettings) -> None:
    configure_console_logging(settings.logging.level)
    if settings.logging.file is not None:
        setup_file_logger(
            settings.logging.file, level=settings.logging.level
        )


def _apply_selection(
    args: argparse.Namespace, service: RelayService
) -> None:
    owner = args.user
    if args.power:
        service.select_power_tier(owner, args.power)
    if args.model:
        provider = (
            args.provider
            or service.settings_store.get_by_user_id(owner).selected_provider
        )
        service.select_model(owner, provider, args.model)
    elif args.provider:
        service.select_provider(owner, args.provider)
    if args.system_prompt is not None:
        service.set_system_prompt(owner, args.system_prompt)


def _print_rank(args: argparse.Namespace, service: RelayService) -> int:
    result = service.rank_models(
        metric=args.metric,
        provider_filter=args.rank_provider,
        power_tier=args.power,
        limit=args.limit,
    )
    if result.fallback:
        print(
            f"No models for tier {args.power}; showing all tiers.",
            file=sys.stderr,
        )
    for position, model in enumerate(result.models, 1):
        print(
            f"{position:>2}. {model.title} [{model.provider}/"
            f"{model.model_id}] tier={model.power_tier} "
            f"{args.metric}={score(model, args.metric):.1f}"
        )
    return 0


def _print_model(args: argparse.Namespace, service: RelayService) -> int:
    provider, _, model_id = args.show_model.partition("/")
    card = service.catalog.get_model(provider, model_id)
    if card is None:
        print(f"Model {args.show_model} not found.", file=sys.stderr)
        return 1
    print(render_model_card(card))
    return 0


def _print_providers(service: RelayService) -> int:
    for name in service.client.router.providers():
        adapter = service.client.router.get(name)
        status = "ready" if adapter.healthcheck() else "missing API key"
        print(f"{name}: {status}")
    return 0


def _print_chat(reply: ChatReply) -> None:
    if reply.saved_path is None:
        print(reply.content)
        return
    print(
        f"Answer is large; full text saved to {reply.saved_path}\n\n"
        f"Preview:\n{reply.content[:PREVIEW_CHARS]}"
    )


def _print_build(outcome: BuildOutcome) -> None:
    if outcome.written is None or outcome.bundle is None:
        print(
            "Could not get structured files from the answer; showing the "
            "raw model response.",
            file=sys.stderr,
        )
        if outcome.saved_path is not None:
            print(f"Full answer saved to {outcome.saved_path}")
            print(outcome.response.content[:PREVIEW_CHARS])
        else:
            print(outcome.response.content)
        return
    bundle = outcome.bundle
    print("Done. Files created.")
    print(f"Folder: {outcome.written.base_dir}")
    print(f"Files: {len(outcome.written.files)}")
    print(f"Summary: {bundle.summary}")
    for item in outcome.written.files:
        print(f"  - {item.relative_path}")
    print(format_run_instructions(bundle.run_instructions))
    if bundle.notes:
        print(f"Notes:\n{bundle.notes}")


def _read_prompt(args: argparse.Namespace) -> Optional[str]:
    if args.prompt == "-":
        return sys.stdin.read()
    return args.prompt


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    load_dotenv()

    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    try:
        settings = load_relay_settings(config_path)
    except (FileNotFoundError, RelayError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    _configure_logging(settings)

    try:
        service = RelayService.from_settings(settings)
        if args.list_providers:
            return _print_providers(service)
        if args.show_model:
            return _print_model(args, service)
        if args.rank:
            return _print_rank(args, service)

        _apply_selection(args, service)
        prompt = _read_prompt(args)
        if not prompt or not prompt.strip():
            if args.system_prompt is not None or args.model or args.power:
                return 0
            parser.error("a prompt is required unless --rank/--show-model")
            return 2

        if args.build:
            _print_build(service.build(args.user, prompt))
            return 0
        if is_artifact_request(prompt):
            LOGGER.info(
                "This looks like a code request; use --build to get files."
            )
        _print_chat(service.chat(args.user, prompt))
        return 0
    except (RelayError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
