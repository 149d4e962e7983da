from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from datetime import date
import itertools
import os

app = FastAPI(title="Mock Asaas Server", version="1.0.0")
# Comma-separated installment references (e.g. "7-2") answered with 400, to exercise partial failures
FAIL_REFERENCES = {ref for ref in os.environ.get("MOCK_ASAAS_FAIL_REFS", "").split(",") if ref}

_ids = itertools.count(1)
customers: dict = {}
payments: dict = {}


def asaas_error(description: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"errors": [{"code": "invalid_action", "description": description}]})


@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/customers")
async def create_customer(request: Request):
    body = await request.json()
    if not body.get("name") or not body.get("cpfCnpj"):
        return asaas_error("O nome e o CPF/CNPJ do cliente são obrigatórios.")
    customer_id = f"cus_{next(_ids):012d}"
    customers[customer_id] = body
    return {"object": "customer", "id": customer_id, **body}

@app.post("/payments")
async def create_payment(request: Request):
    body = await request.json()
    if body.get("customer") not in customers:
        return asaas_error("Cliente inválido ou não informado.")
    if body.get("billingType") not in ("PIX", "BOLETO"):
        return asaas_error("Forma de pagamento inválida.")
    if body.get("externalReference") in FAIL_REFERENCES:
        return asaas_error("Não foi possível gerar a cobrança.")
    date.fromisoformat(body["dueDate"])
    payment_id = f"pay_{next(_ids):012d}"
    payment = {
        "object": "payment",
        "id": payment_id,
        "status": "PENDING",
        "bankSlipUrl": f"https://sandbox.asaas.com/b/pdf/{payment_id}" if body["billingType"] == "BOLETO" else None,
        "invoiceUrl": f"https://sandbox.asaas.com/i/{payment_id}",
        **body,
    }
    payments[payment_id] = payment
    return payment

@app.get("/payments/{payment_id}")
def get_payment(payment_id: str):
    if payment_id not in payments:
        return asaas_error("Cobrança não encontrada.", status_code=404)
    return payments[payment_id]
