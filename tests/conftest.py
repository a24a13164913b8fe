"""Shared fixtures for spectap tests."""

import copy

import pytest
import yaml


USERS_SPEC = {
    'openapi': '3.0.3',
    'info': {'title': 'Users API', 'version': '1.0.0'},
    'paths': {
        '/users': {
            'get': {
                'responses': {
                    '200': {
                        'description': 'List users',
                        'content': {
                            'application/json': {
                                'schema': {
                                    'type': 'array',
                                    'items': {'$ref': '#/components/schemas/User'}
                                }
                            }
                        }
                    }
                }
            },
            'post': {
                'requestBody': {
                    'content': {
                        'application/json': {
                            'schema': {'$ref': '#/components/schemas/User'}
                        }
                    }
                },
                'responses': {
                    '201': {
                        'description': 'Created',
                        'content': {
                            'application/json': {
                                'schema': {'$ref': '#/components/schemas/User'}
                            }
                        }
                    },
                    '400': {'description': 'Bad request'}
                }
            }
        },
        '/users/{id}': {
            'get': {
                'responses': {
                    '200': {
                        'description': 'One user',
                        'content': {
                            'application/json': {
                                'schema': {'$ref': '#/components/schemas/User'}
                            }
                        }
                    },
                    '404': {
                        'description': 'Not found',
                        'content': {
                            'application/json': {
                                'example': {'message': 'user not found'}
                            }
                        }
                    }
                }
            },
            'put': {
                'responses': {
                    '200': {
                        'description': 'Replaced',
                        'content': {
                            'application/json': {
                                'schema': {'$ref': '#/components/schemas/User'}
                            }
                        }
                    }
                }
            },
            'patch': {
                'responses': {
                    '200': {
                        'description': 'Updated',
                        'content': {
                            'application/json': {
                                'schema': {'$ref': '#/components/schemas/User'}
                            }
                        }
                    }
                }
            },
            'delete': {
                'responses': {
                    '204': {'description': 'Deleted'}
                }
            }
        },
        '/health-check': {
            'get': {
                'responses': {
                    '200': {
                        'description': 'Status',
                        'content': {
                            'application/json': {
                                'example': {'healthy': True}
                            }
                        }
                    }
                }
            }
        }
    },
    'components': {
        'schemas': {
            'User': {
                'type': 'object',
                'properties': {
                    'id': {'type': 'string'},
                    'name': {'type': 'string'},
                    'email': {'type': 'string', 'format': 'email'},
                    'age': {'type': 'integer', 'minimum': 18, 'maximum': 99},
                    'role': {'type': 'string', 'enum': ['admin', 'member']}
                }
            }
        }
    }
}


@pytest.fixture
def users_spec():
    """A fresh copy of the users spec document."""
    return copy.deepcopy(USERS_SPEC)


@pytest.fixture
def spec_file(tmp_path, users_spec):
    """Users spec written to a YAML file."""
    path = tmp_path / 'openapi.yaml'
    path.write_text(yaml.safe_dump(users_spec, sort_keys=False))
    return path
