from typing import Optional

# First labels that identify a receive server and can be swapped for the outgoing prefix
SMTP_HOST_PREFIXES: tuple[str, ...] = ("imap", "pop3", "pop")
MAIL_PREFIX = "mail"


def infer_server_name(
    server: str, incoming: Optional[str] = None, outgoing: Optional[str] = None
) -> str:
    """
    Guess a server hostname from what the user typed so far.

    Incoming: prepend `incoming` unless the first label is already
    imap/pop/pop3/mail.
    Outgoing: replace a leading imap/pop/pop3 label with `outgoing`, keep
    a leading "mail" label, otherwise prepend `outgoing`.

    Example:
      infer_server_name("example.com", "imap") -> "imap.example.com"
      infer_server_name("pop.example.com", None, "smtp") -> "smtp.example.com"
    """
    keep_from = 0
    first_dot = server.find(".")
    if first_dot != -1:
        first_word = server[:first_dot].lower()
        can_substitute = first_word in SMTP_HOST_PREFIXES
        is_mail = first_word == MAIL_PREFIX
        if incoming is not None:
            if can_substitute or is_mail:
                return server
        elif can_substitute:
            keep_from = first_dot + 1
        elif is_mail:
            return server

    prefix = incoming if incoming is not None else outgoing
    return f"{prefix}.{server[keep_from:]}"


def has_password_spaces(password: Optional[str]) -> bool:
    """True when the password starts or ends with a space (usually a typo)."""
    if not password:
        return False
    return password[0] == " " or password[-1] == " "
