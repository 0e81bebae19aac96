"""In-memory state for one editing session."""

from __future__ import annotations

from dataclasses import dataclass, field

from formstamp.model.dataset import Dataset
from formstamp.model.document import TemplateDocument
from formstamp.state.store import FinalizedLayout, PlacementStore


@dataclass(slots=True)
class EditingSession:
    template: TemplateDocument | None = None
    dataset: Dataset | None = None
    store: PlacementStore = field(default_factory=PlacementStore)
    layout: FinalizedLayout | None = None

    @property
    def is_ready(self) -> bool:
        return self.template is not None and self.dataset is not None

    def reset(self) -> None:
        if self.template is not None:
            self.template.close()
        self.template = None
        self.dataset = None
        self.layout = None
        self.store.reset()
