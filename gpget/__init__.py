"""
Retrieve files from untrusted storage, releasing them only when signed.

See these links for more details:
 - https://tools.ietf.org/html/rfc4880
 - https://tools.ietf.org/html/rfc6637
 - https://tools.ietf.org/html/draft-ietf-openpgp-rfc4880bis-10
"""
