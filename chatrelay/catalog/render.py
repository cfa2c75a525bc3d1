"""Plain-text model cards."""

from __future__ import annotations

from chatrelay.types import ModelDescriptor


def stars(count: int) -> str:
    return "★" * max(0, min(5, count))


def render_model_card(card: ModelDescriptor) -> str:
    s = card.stars
    return "\n".join(
        [
            f"🤖 {card.title}",
            f"Provider: {card.provider}",
            f"Model ID: {card.model_id}",
            f"Power Tier: {card.power_tier}",
            f"Overall: {s.balanced:.1f} / 5.0",
            f"Tags: {', '.join(card.tags)}",
            "",
            f"💻 Coding:        {stars(s.coding)} ({s.coding}/5)",
            f"🧠 Reasoning:     {stars(s.reasoning)} ({s.reasoning}/5)",
            f"🌐 Multilingual:  {stars(s.multilingual)} "
            f"({s.multilingual}/5)",
            f"⚡ Speed:         {stars(s.speed)} ({s.speed}/5)",
            f"🛡️ Safety:        {stars(s.safety)} ({s.safety}/5)",
        ]
    )
