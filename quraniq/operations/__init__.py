"""
Operations layer.

Pure business logic over already-fetched data. Nothing here touches the
store; services fetch, call into these modules, and write back.

Modules:
- aggregation: per-member history reduction (Score Aggregator)
- ghost_resolver: same-name entry merging (Ghost Deduplication Resolver)
- ranking: roster ordering and top-scorer badges
- backfill: crescents re-derived from local completed-game state
- progress: portable save code export and import
"""
