"""Market monitor — read-only projection over the event journal.

Modules
-------
projection
    ``MarketProjection`` replays the journal and produces ``MarketSnapshot``
    models, frozen point-in-time views of the ledger.
renderer
    ``MarketRenderer`` turns snapshots and journal entries into Rich
    renderables for terminal display.
"""
