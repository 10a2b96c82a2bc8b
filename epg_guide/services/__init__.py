"""
Services package for EPG Guide

This package contains the ingestion pipeline, the in-memory index and lookups.
"""
from epg_guide.services.channel_index import ChannelIndex
from epg_guide.services.guide_service import EPGGuide
from epg_guide.services.guide_types import ProgramRecord
from epg_guide.services.ingestion_service import ingest_programmes
from epg_guide.services.scheduler_service import EPGScheduler
from epg_guide.services.xmltv_tree_service import parse_xmltv_tree

__all__ = [
    'ChannelIndex',
    'EPGGuide',
    'ProgramRecord',
    'ingest_programmes',
    'EPGScheduler',
    'parse_xmltv_tree',
]
