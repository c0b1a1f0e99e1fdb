"""Small helpers used by the startup flow.

Each module covers one concern of launching the dev server:

- required_files: fail-fast check for entry files
- ports: free port detection and "who is using this port"
- prompt: interactive yes/no questions
- console: shared rich console and screen clearing
- urls / network: printable URLs and the LAN address
- browser: opening the default browser
- proxy: validation of the package.json proxy setting
- errors: exception hierarchy
"""
