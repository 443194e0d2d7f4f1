"""Scraper layer: browser session, rendering surface and pagination controller."""

from jobstream.scraper.controller import PaginationController
from jobstream.scraper.surface import PlaywrightSurface, RenderingSurface

__all__ = ["PaginationController", "PlaywrightSurface", "RenderingSurface"]
