"""SessionRegistry — the open onboarding session of each user.

Sessions hold the live answer map and navigation position, so they live in
process memory between requests.  One session per user: opening a flow
replaces whatever the user had open before.  Nothing here is shared across
processes; a restarted server re-opens flows from the stored answers.
"""

import logging

from onboarding_flows.engine import OnboardingSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, OnboardingSession] = {}

    def put(self, session: OnboardingSession) -> None:
        user_id = session.user.user_id
        previous = self._sessions.get(user_id)
        if previous is not None and previous.flow_name != session.flow_name:
            logger.info(
                "User %s switched flow %s -> %s",
                user_id, previous.flow_name, session.flow_name,
            )
        self._sessions[user_id] = session

    def get(self, user_id: str) -> OnboardingSession:
        """Raises ``ValueError`` if the user has no open session."""
        session = self._sessions.get(user_id)
        if session is None:
            raise ValueError(f"Onboarding session not found for user {user_id}")
        return session

    def __len__(self) -> int:
        return len(self._sessions)
