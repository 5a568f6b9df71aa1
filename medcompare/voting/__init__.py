"""
Vote round trip: merge the authority's aggregate into a medication.

Modules
-------
updater : apply_vote_result() + submit_vote() + the VoteTransport protocol.
"""
