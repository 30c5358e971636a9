"""HTTP surface of the edge functions."""
