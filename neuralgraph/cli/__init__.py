"""neuralgraph command line interface."""
