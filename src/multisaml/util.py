"""
Python package file for util functions.
"""
import random
import string


def rndstr(size=16, alphabet=""):
    """
    Returns a string of random ascii characters or digits
    :type size: int
    :type alphabet: str
    :param size: The length of the string
    :param alphabet: A string with characters.
    :return: string
    """
    rng = random.SystemRandom()
    if not alphabet:
        alphabet = string.ascii_letters[0:52] + string.digits
    return type(alphabet)().join(rng.choice(alphabet) for _ in range(size))


def describe_keys(options):
    """
    Sorted, comma separated key names of a mapping, for log lines that must
    not leak option values.

    :type options: collections.abc.Mapping
    :rtype: str
    """
    return ", ".join(sorted(str(key) for key in options)) or "-"
