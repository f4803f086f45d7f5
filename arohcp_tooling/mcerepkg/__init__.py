"""Manifest customization for Helm charts and small bundle-handling helpers."""