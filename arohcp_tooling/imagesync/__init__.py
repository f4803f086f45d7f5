"""Discovery of the newest image tags on Quay and OCI registries."""