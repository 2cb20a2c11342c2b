"""Services package.

- advice: throttled gateway in front of the generative-text provider
- categories: waste category classifier
- detection: detection filtering and per-session stores
- insights: breakdowns, recommendations, tips and trends
"""
