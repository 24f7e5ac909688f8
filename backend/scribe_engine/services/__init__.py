"""Session orchestration and remote classification client."""
