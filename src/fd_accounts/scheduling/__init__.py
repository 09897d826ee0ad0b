"""Time-driven job dispatch: per-day tracker, trigger windows, scheduler loop."""
