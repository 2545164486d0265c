"""Benchmark driver, dataset reset and report rendering."""
