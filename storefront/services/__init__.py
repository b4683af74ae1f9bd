"""Storefront services: money helpers, backend API client, session and domain stores."""
