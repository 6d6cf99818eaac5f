"""Camera acquisition and frame delivery."""
