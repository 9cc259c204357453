'''
Turns command line arguments into the single command string sent over an exec channel.
'''

import logging
import shlex

from . import PROPERTY_FLAG



__all__ = ['build_command']


def build_command(args, property_flag=PROPERTY_FLAG):
    '''
    Quotes and joins args into one shell command. Pairs of the form `property_flag key=value` are
    pulled out and returned separately as SSH client properties instead.
    Returns a tuple (command, properties).
    args -- list of argument strings, in order
    property_flag -- the token that introduces a key=value property
    '''
    words = []
    properties = {}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == property_flag and i + 1 < len(args):
            name, sep, value = args[i + 1].partition('=')
            # A pair needs a non-empty name; '=value' goes to the command like anything else.
            if sep and name:
                logging.debug(f"SSH client property {name}={value}")
                properties[name] = value
                i += 2
                continue
        words.append(shlex.quote(arg))
        i += 1
    return ' '.join(words), properties
