class OrchestratorError(Exception):
    """Raised when the extraction orchestrator reports a failure."""


class OrchestratorNetworkError(OrchestratorError):
    """Raised when the orchestrator call fails due to network/infrastructure issues."""
