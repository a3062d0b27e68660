"""Short random identifiers for content blocks"""

import secrets


ALPHABET = "_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


class BlockIdGenerator:
    """Draw fixed-length random IDs, never repeating one it already issued."""

    def __init__(self, length: int = 5):
        self.length = length
        self.issued: set[str] = set()

    def __call__(self) -> str:
        while True:
            block_id = "".join(secrets.choice(ALPHABET) for _ in range(self.length))
            if block_id not in self.issued:
                self.issued.add(block_id)
                return block_id
