"""wpclone random password generator"""
import secrets
import string


class RANDOM:
    """Random strings for credentials"""

    ALPHANUM = string.ascii_letters + string.digits

    def __init__():
        pass

    @staticmethod
    def gen(length=25, charset=None):
        """Return ``length`` random characters from ``charset``"""
        charset = charset or RANDOM.ALPHANUM
        return ''.join(secrets.choice(charset) for _ in range(length))
