"""Flask middleware: logging, request timing, rate limits."""
