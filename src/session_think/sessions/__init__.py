"""Session storage, relationship graph and search.

Layout:
    <session_dir>/
    ├── thesis___NVDA___ai_dominance.json   # one JSON list of thoughts per session
    └── TEMP___1760864400000___k3x9qa.json  # ephemeral sessions until renamed

Storage keys come from `naming.SessionNamer.encode()`; there is no index file,
listing the directory is the session enumeration.
"""
