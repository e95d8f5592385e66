"""Static per-stage guidance shown alongside the conversation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from essaycoach.core.stages import STAGE_ORDER, Stage

WELCOME_MESSAGE = (
    "👋 **Hi! Welcome to your personal essay tutor!**\n\n"
    "🎯 I'm here to guide you step by step through building a strong argumentative essay, "
    "from choosing the topic all the way to the conclusion.\n\n"
    "📝 **To get started, tell me:**\n"
    "• Which topic or prompt do you need to work on?\n"
    "• Or, if you prefer, we can pick a topic together!"
)


@dataclass(frozen=True)
class StageGuidance:
    stage: Stage
    label: str
    guidance: str
    focus_prompt: str

    def as_dict(self) -> Dict[str, str]:
        return {
            "stage": self.stage.value,
            "label": self.label,
            "guidance": self.guidance,
            "focus_prompt": self.focus_prompt,
        }


GUIDANCE: Dict[Stage, StageGuidance] = {
    Stage.TOPIC: StageGuidance(
        Stage.TOPIC,
        "Choosing the Topic",
        "State the prompt you are writing about in one clear sentence.",
        "Let's work more on the essay topic",
    ),
    Stage.THESIS: StageGuidance(
        Stage.THESIS,
        "Defining the Thesis",
        "Take a position on the topic and say what you defend in a single sentence.",
        "I want to sharpen my thesis",
    ),
    Stage.INTRODUCTION: StageGuidance(
        Stage.INTRODUCTION,
        "Introduction",
        "Contextualize the topic with a productive reference, present the thesis and announce both arguments.",
        "I need help with the introduction",
    ),
    Stage.DEVELOPMENT1: StageGuidance(
        Stage.DEVELOPMENT1,
        "First Development",
        "Introduce the first argument with concrete data or an example, explain it and tie it back to the thesis.",
        "Let's work on the first argument",
    ),
    Stage.DEVELOPMENT2: StageGuidance(
        Stage.DEVELOPMENT2,
        "Second Development",
        "Present the second argument with laws, research or cultural works and prepare the conclusion.",
        "I need to develop the second argument",
    ),
    Stage.CONCLUSION: StageGuidance(
        Stage.CONCLUSION,
        "Conclusion",
        "Restate the problem and thesis, then propose an intervention: who, what, how, by what means and why.",
        "Let's write the conclusion with an intervention proposal",
    ),
    Stage.FINALIZE: StageGuidance(
        Stage.FINALIZE,
        "Final Review",
        "Every section is filled in. Review the skeleton and start writing the full essay.",
        "Let's review the complete structure",
    ),
}


def guidance_for(stage: Stage) -> StageGuidance:
    return GUIDANCE[stage]


def guidance_table() -> List[StageGuidance]:
    return [GUIDANCE[stage] for stage in STAGE_ORDER]


__all__ = ["GUIDANCE", "StageGuidance", "WELCOME_MESSAGE", "guidance_for", "guidance_table"]
