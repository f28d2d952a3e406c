"""
Source discovery.

- base: enumerator interface, static enumerator, registry callback bridge
- soapy: SoapySDR / pyrtlsdr enumerator
"""
from __future__ import annotations
