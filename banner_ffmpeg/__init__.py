"""FFmpeg-based animated banner rendering.

Modules:
- graph: Filter-graph node model, pad validation and option escaping
- builder: Banner filter graph for a background plus optional overlay
- runner: Subprocess execution and probing helpers
- animated: Orchestrates overlay render, ffmpeg invocation and cleanup
"""
