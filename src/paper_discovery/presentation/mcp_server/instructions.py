"""
MCP Server Instructions - usage guide for AI agents.
"""

from __future__ import annotations

SERVER_INSTRUCTIONS = """
Paper Discovery MCP Server - multi-source academic literature search

search_papers is the single entry point. One call queries OpenAlex, Crossref,
Semantic Scholar, arXiv and CORE in parallel, ranks the merged results and
collapses duplicates (including arXiv preprints of journal papers).

Examples:
```
search_papers(query="graph neural networks for molecules", max_results=10)
search_papers(query="dengue vaccine trials", local_region="Brazil")
search_papers(query="LLM hallucination", sources="arxiv,semantic_scholar", fast_mode=True)
```

Reading the result:
- status "ok": every queried source answered
- status "partial": papers found, but some sources failed (see metadata.errors)
- status "no_results": sources answered, nothing matched; rephrase the query
- status "degraded": nothing found AND sources failed; retry later
- papers[].preprint_id: arXiv URL of the preprint merged into a journal record
- papers[].canonical_id: stable id, safe to store and cite
"""
