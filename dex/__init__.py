"""dex - Price decoding and pool adapters."""
