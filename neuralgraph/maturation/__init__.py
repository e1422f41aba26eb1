"""Maturation — fitness scoring, lifecycle phases, genesis and ingestion.

- fitness: pure node/edge health scores on a 0-100 scale
- lifecycle: phase derivation from execution counts, genesis seeding
- ingest: execution record ingestion (counter updates)
"""
