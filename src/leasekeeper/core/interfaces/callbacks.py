"""Leadership callback interface exposed to application code."""

from abc import ABC


class LeaderCallbacks(ABC):
    """Subscriber notified of election transitions.

    Handlers may be plain or async methods. They run on the elector's own
    loop, so a slow handler delays renewal; keep them short.

    - on_became_leader: once per tenure, before any code may assume leadership
    - on_lost_leadership: once per tenure end (release, conflict, missed deadline)
    - on_observed_leader: informational, when the visible holder changes
    """

    def on_became_leader(self) -> object:
        return None

    def on_lost_leadership(self) -> object:
        return None

    def on_observed_leader(self, identity: str) -> object:
        return None
