"""Discord sales bot code generator."""

import json

from .models import BotConfig, DEFAULT_ENDPOINT

CONFIG_PLACEHOLDER = "__BOT_CONFIG__"

BOT_TEMPLATE = """
// Bot de Vendas Discord - Código Base
const { Client, GatewayIntentBits, EmbedBuilder } = require('discord.js');
const axios = require('axios');

const client = new Client({
  intents: [
    GatewayIntentBits.Guilds,
    GatewayIntentBits.GuildMessages,
    GatewayIntentBits.MessageContent,
  ],
});

const config = __BOT_CONFIG__;

// API Nitro Configuration
const NITRO_API = {
  endpoint: '__NITRO_ENDPOINT__',
  token: 'SEU_TOKEN_AQUI' // Configure nas configurações do painel
};

client.on('ready', () => {
  console.log(`Bot ${client.user.tag} está online!`);
});

client.on('messageCreate', async (message) => {
  if (message.author.bot || !message.content.startsWith(config.prefix)) return;

  const args = message.content.slice(config.prefix.length).trim().split(/ +/);
  const command = args.shift().toLowerCase();

  switch (command) {
    case 'produtos':
      await showProducts(message);
      break;
    case 'comprar':
      await handlePurchase(message, args);
      break;
    case 'ajuda':
      await showHelp(message);
      break;
  }
});

async function showProducts(message) {
  try {
    const response = await axios.get(`${NITRO_API.endpoint}public/v1/products?api_token=${NITRO_API.token}`);
    const products = response.data.data || [];

    const embed = new EmbedBuilder()
      .setTitle('🛍️ Produtos Disponíveis')
      .setColor('#5865F2')
      .setTimestamp();

    if (products.length === 0) {
      embed.setDescription('Nenhum produto disponível no momento.');
    } else {
      products.forEach(product => {
        const price = (product.amount / 100).toLocaleString('pt-BR', {
          style: 'currency',
          currency: 'BRL'
        });
        embed.addFields({
          name: product.title,
          value: `**Preço:** ${price}\\n**Hash:** ${product.hash}\\n**Tipo:** ${product.product_type}`,
          inline: true
        });
      });
      embed.setFooter({ text: `Use ${config.prefix}comprar <hash> para comprar um produto` });
    }

    await message.reply({ embeds: [embed] });
  } catch (error) {
    console.error('Erro ao buscar produtos:', error);
    await message.reply('❌ Erro ao carregar produtos. Tente novamente mais tarde.');
  }
}

async function handlePurchase(message, args) {
  if (args.length === 0) {
    return message.reply(`❌ Use: ${config.prefix}comprar <hash_do_produto>`);
  }

  const productHash = args[0];

  const embed = new EmbedBuilder()
    .setTitle('💳 Iniciar Compra')
    .setDescription(`Para comprar o produto ${productHash}, clique no link abaixo:`)
    .setColor('#22C55E')
    .addFields({
      name: '🔗 Link de Pagamento',
      value: `[Clique aqui para pagar](${NITRO_API.endpoint}public/v1/checkout/${productHash})`
    })
    .setTimestamp();

  await message.reply({ embeds: [embed] });
}

async function showHelp(message) {
  const embed = new EmbedBuilder()
    .setTitle('📋 Comandos Disponíveis')
    .setColor('#5865F2')
    .addFields(
      { name: `${config.prefix}produtos`, value: 'Lista todos os produtos disponíveis', inline: false },
      { name: `${config.prefix}comprar <hash>`, value: 'Inicia o processo de compra de um produto', inline: false },
      { name: `${config.prefix}ajuda`, value: 'Mostra esta mensagem de ajuda', inline: false }
    )
    .setTimestamp();

  await message.reply({ embeds: [embed] });
}

client.login(config.token);
"""


def render_bot_code(config: BotConfig) -> str:
    """
    Render the bot source with the settings embedded as a literal.

    The output is meant to be copied into a bot.js file; it is never run here.

    Args:
        config: Bot settings to embed

    Returns:
        JavaScript source code
    """
    config_json = json.dumps(config.model_dump(), indent=2, ensure_ascii=False)
    return (
        BOT_TEMPLATE
        .replace("__NITRO_ENDPOINT__", DEFAULT_ENDPOINT)
        .replace(CONFIG_PLACEHOLDER, config_json)
    )
