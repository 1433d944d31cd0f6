"""gbdriver -- frame-paced pygame host for a WebAssembly Game Boy core."""
