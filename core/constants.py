# core/constants.py

PROVIDERS = ['Cloudflare', 'Fastly', 'GCore', 'Cloudfront']
DEFAULT_PROVIDER = 'Cloudflare'

# Address prefixes that map to a provider other than the default one
PROVIDER_PREFIXES = {
    'Fastly': ['151.', '199.', '157.'],
}

# /16 prefixes used to synthesize fallback addresses
FALLBACK_PREFIXES = [
    '104.16', '104.17', '104.18', '104.19', '104.20', '104.21', '104.22', '104.23',
    '172.64', '172.65', '172.66', '172.67',
    '162.158', '162.159',
    '188.114',
    '151.101', '199.232', '157.185',
    '141.101', '108.162', '190.93', '197.234'
]

# Published ranges, used to flag suggestions that fall outside known CDN space
CDN_RANGES = {
    'Cloudflare': [
        '103.21.244.0/22',
        '103.22.200.0/22',
        '103.31.4.0/22',
        '104.16.0.0/13',
        '104.24.0.0/14',
        '108.162.192.0/18',
        '131.0.72.0/22',
        '141.101.64.0/18',
        '162.158.0.0/15',
        '172.64.0.0/13',
        '173.245.48.0/20',
        '188.114.96.0/20',
        '190.93.240.0/20',
        '197.234.240.0/22',
        '198.41.128.0/17'
    ],
    'Fastly': [
        '151.101.0.0/16',
        '199.232.0.0/16',
        '157.52.64.0/18',
        '157.185.0.0/16'
    ]
}

# Placeholder latency, milliseconds (upper bound exclusive)
LATENCY_RANGE = (20, 170)

# Dashboard colour bands, milliseconds
LATENCY_GRADES = [
    (60, 'good'),
    (120, 'fair'),
]

MAX_IP_COUNT = 300
DEFAULT_IP_COUNT = 50
SYNTHESIS_MAX_ATTEMPTS = 10000

# Finished scans kept in memory for status polling and export
MAX_STORED_SCANS = 100

# Seen addresses quoted back to the model as "do not repeat"
EXCLUSION_LIMIT = 50

GEMINI_API_URL = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'
GEMINI_MODEL = 'gemini-3-flash-preview'
