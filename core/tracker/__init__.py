from core.tracker.service import MatchOutcomeTracker, MatchContext

__all__ = ['MatchOutcomeTracker', 'MatchContext']
