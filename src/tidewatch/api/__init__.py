"""
FastAPI REST API for Tidewatch

Provides REST endpoints for dashboards, maps and the advisory assistant:
- Composite risk and health indices per domain
- Segment-level scores for map layers
- Active alerts for a location
- Health checks
"""
