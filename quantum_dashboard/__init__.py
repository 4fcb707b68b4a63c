"""
Uster Quantum Dashboard: spinning unit quality analytics backend

Serves yarn clearer metrics for six spinning units from the per-unit
workbook exports the Quantum system drops into a storage bucket.

The exports are cached in memory and refreshed every 30 minutes. Live views
roll rows up unit → article → machine; trend views produce day × label
series with a per-machine drill-down.

To swap the storage bucket for another source:
    Implement a BlobStore (download(name) -> bytes) and pass it to
    api.create_app(store=...). The workbook layout stays the same.

To add a cut, alarm or quality column:
    Add its canonical name to the matching list in config. The resolver
    picks it up in any header case and every aggregate level reports it.
"""

__version__ = "1.0.0"
