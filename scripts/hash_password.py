#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from extractdb.auth.passwords import hash_password


def main() -> None:
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    if not pw1.strip():
        raise SystemExit("Empty password")

    print("Put this in ADMIN_PASSWORD (quote it, it contains '$'):")
    print(hash_password(pw1.strip()))


if __name__ == "__main__":
    main()
