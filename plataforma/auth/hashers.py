"""
Hashers de senha.

Hashers disponíveis:
- PBKDF2Hasher: Padrão, sem dependências extras

Uso:
    from plataforma.auth.hashers import make_password_hasher

    hasher = make_password_hasher("pbkdf2_sha256", iterations=600_000)
    hashed = hasher.hash("Senha@123")

    if hasher.verify("Senha@123", hashed):
        print("Senha correta!")
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from abc import ABC, abstractmethod


class PasswordHasher(ABC):
    """
    Interface para hashers de senha.

    Implemente para criar seu próprio algoritmo de hash:

        class MyHasher(PasswordHasher):
            algorithm = "my_algo"

            def hash(self, password: str) -> str:
                return my_hash_function(password)

            def verify(self, password: str, hashed: str) -> bool:
                return my_verify_function(password, hashed)

        register_password_hasher(MyHasher)
    """

    algorithm: str = "unknown"

    @abstractmethod
    def hash(self, password: str) -> str:
        """
        Gera hash da senha.

        Returns:
            Hash da senha (incluindo salt e metadados)
        """
        ...

    @abstractmethod
    def verify(self, password: str, hashed: str) -> bool:
        """Verifica se a senha corresponde ao hash."""
        ...

    def needs_rehash(self, hashed: str) -> bool:
        """Verifica se o hash precisa ser recalculado."""
        return False


class PBKDF2Hasher(PasswordHasher):
    """
    Hasher usando PBKDF2 com SHA256.

    Formato do hash: pbkdf2_sha256$iterations$salt$hash
    """

    algorithm = "pbkdf2_sha256"
    iterations = 600_000  # OWASP 2023

    def __init__(self, iterations: int | None = None) -> None:
        if iterations is not None:
            self.iterations = iterations

    def _derive(self, password: str, salt: str, iterations: int) -> str:
        hash_value = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt.encode("utf-8"),
            iterations,
        )
        return base64.b64encode(hash_value).decode("ascii")

    def hash(self, password: str) -> str:
        salt = secrets.token_hex(16)
        hash_b64 = self._derive(password, salt, self.iterations)
        return f"{self.algorithm}${self.iterations}${salt}${hash_b64}"

    def verify(self, password: str, hashed: str) -> bool:
        try:
            algorithm, iterations_str, salt, stored_hash = hashed.split("$")
            if algorithm != self.algorithm:
                return False

            new_hash_b64 = self._derive(password, salt, int(iterations_str))
            return secrets.compare_digest(stored_hash, new_hash_b64)
        except (ValueError, AttributeError):
            return False

    def needs_rehash(self, hashed: str) -> bool:
        """Precisa recalcular se as iterações armazenadas são menores que as atuais."""
        try:
            _, iterations_str, _, _ = hashed.split("$")
            return int(iterations_str) < self.iterations
        except (ValueError, AttributeError):
            return True


_password_hashers: dict[str, type[PasswordHasher]] = {
    PBKDF2Hasher.algorithm: PBKDF2Hasher,
}


def register_password_hasher(hasher_class: type[PasswordHasher]) -> None:
    """Registra uma classe de hasher pelo seu algoritmo."""
    _password_hashers[hasher_class.algorithm] = hasher_class


def make_password_hasher(name: str = "pbkdf2_sha256", iterations: int | None = None) -> PasswordHasher:
    """
    Instancia um hasher registrado.

    Raises:
        KeyError: Se hasher não encontrado
    """
    if name not in _password_hashers:
        raise KeyError(f"Password hasher '{name}' not found. Available: {list(_password_hashers)}")

    hasher_class = _password_hashers[name]
    if hasher_class is PBKDF2Hasher:
        return PBKDF2Hasher(iterations=iterations)
    return hasher_class()
