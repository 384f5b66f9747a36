"""chains - Base chain JSON-RPC access."""
