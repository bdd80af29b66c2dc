"""Provider adapters, one per wire-protocol family."""
