"""Interest arithmetic: period boundaries, compounding and simple interest."""
