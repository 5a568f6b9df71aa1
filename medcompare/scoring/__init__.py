"""
Doctor-vote scoring: verified votes → trust score; percentages → labels.

Modules
-------
trust      : calculate_trust_score() + risk tier helpers — pure functions.
classifier : recommendation_label() / recommendation_band() / format_count()
             / progress_width() + summarize_recommendation().
"""
