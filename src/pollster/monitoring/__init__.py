"""In-process counters and histograms for the poll loop and session registry."""
