"""
HTTP client for the search service and vote authority.

Modules
-------
client : MedCompareClient (httpx) + parse_lookup_response() / parse_vote_delta().
"""
