"""
rewards_ssz

Converts rewards files between their JSON text form and the compact SSZ
binary form, and reports the IPFS CID of the binary form.
"""

__version__ = "1.0.0"
