"""Evolution — the periodic cycle that reshapes the capability graph."""
