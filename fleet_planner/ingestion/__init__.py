"""
Ingestion layer - fleet snapshot import.

Submodules:
  fleet_json - JSON import parser for trainset records (with optional
               fitness certificates and job cards)
"""
