"""Frame sources feeding the decoder."""
