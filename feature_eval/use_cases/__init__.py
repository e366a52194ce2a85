"""Engine use-cases: orchestration entry points built from components."""
