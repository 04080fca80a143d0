"""Application services.

Import the concrete modules directly (e.g. unistream.application.services.search_service);
this package stays import-light so the provider adapters can use the fallback driver
without pulling in the whole service context.
"""
