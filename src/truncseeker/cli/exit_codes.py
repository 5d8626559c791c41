"""Standard exit codes for the TruncSeeker CLI.

Following shell conventions:
- 0: Success
- 1: Pipeline aborted / configuration or tool error
- 2: Command line usage error (raised by click itself)
- 130: Interrupted (SIGINT or SIGTERM)
"""

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_SIGINT = 130  # 128 + SIGINT(2)
