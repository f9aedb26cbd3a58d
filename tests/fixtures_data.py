"""Conjunto de dados reutilizável para cenários de teste backend."""

CLIENT_USER = {
    "id": "sub-client-1",
    "email": "cliente@example.com",
    "first_name": "Ana",
    "last_name": "Souza",
    "phone_number": "11999990000",
    "role": "client",
}

EMPLOYEE_USER = {
    "id": "sub-employee-1",
    "email": "funcionario@example.com",
    "first_name": "Bruno",
    "role": "employee",
}

ADMIN_USER = {
    "id": "sub-admin-1",
    "email": "admin@example.com",
    "first_name": "Carla",
    "role": "admin",
}

CUPCAKES = [
    {"name": "Cupcake de Chocolate", "price": "8.50"},
    {"name": "Cupcake Red Velvet", "price": "9.90"},
    {"name": "Cupcake de Limão", "price": "7.00"},
]

FIRST_LOGIN_CLAIMS = {
    "sub": "sub-new-1",
    "email": "Novo.Funcionario@Example.com",
    "first_name": "Diego",
    "last_name": "Lima",
    "profile_image_url": "https://cdn.example.com/diego.png",
}

ROLE_DENIED = {
    "expected_status_code": 403,
    "expected_detail": "Permissão insuficiente",
}
