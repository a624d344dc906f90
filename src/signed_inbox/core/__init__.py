"""Settings, security primitives and shared errors."""
