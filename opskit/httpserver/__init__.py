"""JSON HTTP server with per-request IDs and console-and-file logging."""