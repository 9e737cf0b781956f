"""Token lifecycle core: auth service, re-authentication and error taxonomy."""
