"""Business services: deadline prediction engine, phase pipeline, portfolio glue."""
