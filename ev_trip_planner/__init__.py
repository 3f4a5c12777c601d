"""EV trip planner: weather-aware energy estimates and charging station discovery."""
