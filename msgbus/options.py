"""Parameters for joining a bus."""

from __future__ import annotations

from dataclasses import dataclass, field

from .label import Label


@dataclass
class Options:
    """How an endpoint joins a bus.

    ``identifier`` names the bus, ``label`` routes messages to this endpoint,
    ``token`` must match the controller's, and ``controller_affinity`` lets
    the endpoint become the bus controller.
    """

    identifier: str
    label: Label = field(default_factory=Label)
    token: str = ""
    controller_affinity: bool = True

    def copy(self) -> Options:
        """Return an independent copy, including the label."""
        return Options(
            identifier=self.identifier,
            label=Label(self.label),
            token=self.token,
            controller_affinity=self.controller_affinity,
        )