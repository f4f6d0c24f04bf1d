"""
Bitwarden Importer
Copyright (c) 2025

LEGAL NOTICE:
This tool moves passwords from LastPass into Bitwarden on behalf of their owner.
It must only be used with accounts you own, on a device you control. Exported
vault data is written to the local cache directory only for the duration of an
import run and deleted afterwards.
"""
