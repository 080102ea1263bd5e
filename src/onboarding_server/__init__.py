"""onboarding_server — FastAPI service exposing the onboarding engine over HTTP."""
