"""
HeatSentry - liquidation heatmap ingestion and change detection.
"""

__version__ = "0.1.0"
