"""Addresses, calldata and clock values shared by the test modules."""

ATTACKER = "0x66a9893cc07d91d95644aedd05d03f95e1dba8af"
VICTIM = "0x51c72848c68a965f66fa7a88855f9f7784502a7f"
BYSTANDER = "0x71c72848c68a965f66fa7a88855f9f7784502a8a"
ROUTER = "0x7a250d5630b4cf539739df2c5dacb4c659f2488d"
SWAP_CALLDATA = "0x1234567890"

# Wall-clock stand-in that keeps window 0 (timestamps 0..119) alive:
# cutoff = 700 - 600 = 100.
FIXED_NOW = 700
