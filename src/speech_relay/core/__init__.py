"""
Core pipeline machinery.

Run state, scoped temporary resources, the error taxonomy and the
orchestrator that sequences the translation stages.
"""
