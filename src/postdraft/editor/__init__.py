"""Completion-streaming editor engine."""

from postdraft.editor.controller import CompletionStreamController
from postdraft.editor.interrupts import Interrupt, InterruptHandler
from postdraft.editor.patcher import IncrementalPatchApplier
from postdraft.editor.post import PostEditor
from postdraft.editor.session import EditorSession
from postdraft.editor.trigger import TriggerDetector, TriggerEvent, build_prompt

__all__ = [
    "CompletionStreamController",
    "EditorSession",
    "IncrementalPatchApplier",
    "Interrupt",
    "InterruptHandler",
    "PostEditor",
    "TriggerDetector",
    "TriggerEvent",
    "build_prompt",
]
