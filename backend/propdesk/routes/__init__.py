"""
PropDesk Backend — API Routes Package
=======================================

Route Inventory:
    - properties.py:  POST  /api/properties                               (create, multipart)
                      GET   /api/properties                               (list by owner)
                      GET   /api/properties/{id}                          (fetch one)
                      PATCH /api/properties/{id}/notes                    (append a note)
                      PATCH /api/properties/{id}/images/{key}/caption     (set caption)
    - files.py:       GET   /api/files/{key}                              (local storage only)
    - health.py:      GET   /health

Routes stay thin: read the request, resolve the owner, call PropertyService,
pick the status code. Coercion and business rules live in the services.
"""
