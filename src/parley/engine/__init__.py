"""Resolution engine: partial JSON parsing, tool resolution, transcript decoding."""
