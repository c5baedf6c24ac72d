"""Request handler constants."""

# HTTP status codes
HTTP_200_OK = 200
HTTP_400_BAD_REQUEST = 400
HTTP_404_NOT_FOUND = 404
HTTP_500_INTERNAL_SERVER_ERROR = 500

# Pagination defaults
DEFAULT_PAGE_SIZE = 50
DEFAULT_PAGE_NUMBER = 1

# Signed 64-bit identifier range
MIN_USER_ID = -(2**63)
MAX_USER_ID = 2**63 - 1

# Pagination values are 32-bit, keeping the row offset within 64 bits
MAX_PAGE_PARAM = 2**31 - 1
