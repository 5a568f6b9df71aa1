"""
Alternative-set curation for the comparison view.

Modules
-------
pricing : parse_price() + price_difference() — Decimal arithmetic, no I/O.
curator : deduplicate() / select_best() / partition_remaining() +
          curate_alternatives() + rerank_for_navigation().
"""
