"""
Test suite for hub_clustering.

- test_algorithms/: distances, hubness, hub selection, convergence, seeding
  and the GHPC / GHPKM / LHPC engine
- test_config.py: environment-driven configuration
"""
