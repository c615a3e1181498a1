"""Codec, merkle proofs and content addressing for rewards files."""
