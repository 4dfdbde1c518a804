"""Thin HTTP adapter exposing the pipelines."""
