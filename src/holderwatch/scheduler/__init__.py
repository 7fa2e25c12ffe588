"""Background scheduling for the holder cache refresher."""
