"""RSI + moving-average swing trader."""
