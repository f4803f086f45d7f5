"""Cluster-service resource identifiers."""