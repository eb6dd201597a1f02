"""GitNarrator: repository metadata summaries and structure diagrams."""
