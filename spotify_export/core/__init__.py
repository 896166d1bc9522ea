"""
Core application engine for browsing the library and running exports.

The `ExportSession` acts as the session-scoped coordinator. It owns the
`StateStore`, one loader per collection and the `ExportPipeline` that
resolves every selected item into the export document.
"""
