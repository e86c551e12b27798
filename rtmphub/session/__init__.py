"""Per-connection and per-stream session state and handler contexts."""