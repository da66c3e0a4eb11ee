"""
API route tables, one router per resource. Mounted by main.create_app:

- products.py:      /api/products
- users.py:         /api/users
- orders.py:        /api/orders
- upload.py:        /api/upload
- client_config.py: /api/config
"""
