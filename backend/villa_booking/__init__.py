"""Villa booking service: reservation lifecycle and availability engine."""
