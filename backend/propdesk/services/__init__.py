"""
PropDesk Backend — Services Layer
===================================

Service Inventory:
    - ObjectStore (abstract): blob uploads and public URLs
      - S3ObjectStore:    aioboto3 client against S3 or an S3-compatible endpoint
      - LocalObjectStore: files under STORAGE_ROOT, served by /api/files
    - PropertyStore:   record persistence (PostgreSQL, JSONB document columns)
    - PropertyService: field coercion, uploads, note and caption workflows

Services never see HTTP objects; routes hand them plain values and
UploadedFile instances, so they are tested without a server.
"""
