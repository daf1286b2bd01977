"""Daily standup automation: scheduled check-ins, answer collection and summaries."""
