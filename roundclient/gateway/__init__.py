"""REST boundary: batch submission and wallet balance."""
