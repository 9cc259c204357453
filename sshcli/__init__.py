'''
Runs when sshcli gets imported as a module. Handles various housekeeping items: checks Python
version, reads config, describes logging, and manages relational importing.
'''

import sys
import configparser
import os

from logging.config import dictConfig



# Assert that we're running Python version >= 3.8.
if (sys.version_info[0] < 3 or (sys.version_info[0] == 3 and sys.version_info[1] < 8)):
    raise Exception("Python 3.8 or a more recent version is required.")


from .utils import *


# Read in constants. Packaged defaults first, then a config.ini in the working directory.
CFG = configparser.ConfigParser()
CFG.read(os.path.join(os.path.dirname(__file__), 'defaults.ini'))
CFG.read(os.path.join('config.ini'))

LOG_LEVEL = CFG.get('GENERAL', 'LOG_LEVEL')

LOGIN_PATH = CFG.get('HTTP', 'LOGIN_PATH')
ENDPOINT_HEADER = CFG.get('HTTP', 'ENDPOINT_HEADER')
HTTP_TIMEOUT = CFG.getfloat('HTTP', 'TIMEOUT')

CONNECT_TIMEOUT = CFG.getfloat('SSH', 'CONNECT_TIMEOUT')
AUTH_TIMEOUT = CFG.getfloat('SSH', 'AUTH_TIMEOUT')
EXEC_TIMEOUT = CFG.getfloat('SSH', 'EXEC_TIMEOUT')
KNOWN_HOSTS = os.path.expanduser(CFG.get('SSH', 'KNOWN_HOSTS'))
PROPERTY_FLAG = CFG.get('SSH', 'PROPERTY_FLAG')

# Only applied by configure_logging(). stdout carries remote output; log records go to stderr.
LOGGING_CONFIG = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format': '%(asctime)s %(levelname)-8s [%(filename)s:%(lineno)d] %(message)s',
        }
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'stream': 'ext://sys.stderr',
            'formatter': 'default'
        }
    },
    'loggers': {
        # paramiko.transport chats about every negotiation step at INFO
        'paramiko': {
            'level': 'WARNING'
        }
    },
    'root': {
        'level': LOG_LEVEL,
        'handlers': ['console']
    }
}


def configure_logging(level=None):
    '''
    Applies LOGGING_CONFIG. Meant for the command line entry point, not for library users.
    level -- overrides the configured root level (e.g. 'DEBUG')
    '''
    config = dict(LOGGING_CONFIG, root=dict(LOGGING_CONFIG['root']))
    if level:
        config['root']['level'] = level.upper()
    dictConfig(config)


from .command import *
from .settings import *
from .keys import *
from .hostkeys import *
from .endpoint import *
from .session import *
from .runner import *
