"""Task routing — classifier contract and routing supervisor."""
