"""
Quality of Experience / Quality of Service samples for handover decisions.

This module provides the read-only quality sample providers consumed by the
handover decision core.
"""

from .providers import (QualitySample, QualitySampleProvider, InMemoryQualityProvider,
                        TableQualityProvider, LegacyDirectoryQualityProvider)

__all__ = ['QualitySample', 'QualitySampleProvider', 'InMemoryQualityProvider',
           'TableQualityProvider', 'LegacyDirectoryQualityProvider']
